"""Directory inspection: is the managed path absent, foreign, or a repository?"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from git import Repo, Remote, InvalidGitRepositoryError, NoSuchPathError, GitCommandError

from .repository_info import DirectoryState


DEFAULT_REMOTE_NAME = "origin"


@dataclass
class DirectoryInspection:
    """What was found at a managed path."""
    state: DirectoryState
    path: Path
    remote_name: Optional[str] = None
    remote_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.state != DirectoryState.ABSENT

    @property
    def is_repository(self) -> bool:
        return self.state == DirectoryState.REPOSITORY


def open_repository(local_path: Path) -> Repo:
    """
    Open local_path as a repository root.

    Parent directories are not searched, so a plain directory nested
    inside some other checkout is not mistaken for a repository.

    Raises:
        InvalidGitRepositoryError: path exists but is not a repository root
        NoSuchPathError: path does not exist
    """
    repo = Repo(local_path)
    if repo.bare:
        repo.close()
        raise InvalidGitRepositoryError(f"{local_path} is a bare repository without a working tree")
    if repo.working_tree_dir is None or Path(repo.working_tree_dir).resolve() != Path(local_path).resolve():
        repo.close()
        raise InvalidGitRepositoryError(f"{local_path} is not the root of its repository")
    return repo


def read_remote_url(repo: Repo, remote: Remote) -> Optional[str]:
    """First URL configured on a remote, or None when it has none."""
    reader = repo.config_reader()
    try:
        urls = reader.get_values(f'remote "{remote.name}"', "url")
    except (KeyError, configparser.Error):
        return None
    finally:
        reader.release()
    for url in urls:
        if url:
            return str(url)
    return None


def find_tracked_remote(repo: Repo) -> Tuple[Optional[str], Optional[str]]:
    """
    Locate the remote the engine tracks and its URL.

    "origin" wins; a repository with exactly one remote under another
    name uses that one.

    Returns:
        Tuple of (remote_name, remote_url); either may be None
    """
    remotes = list(repo.remotes)
    remote = next((r for r in remotes if r.name == DEFAULT_REMOTE_NAME), None)
    if remote is None and len(remotes) == 1:
        remote = remotes[0]
    if remote is None:
        return None, None
    return remote.name, read_remote_url(repo, remote)


def inspect_directory(local_path: Path) -> DirectoryInspection:
    """
    Determine the on-disk state of a managed directory.

    Args:
        local_path: Directory the target owns

    Returns:
        DirectoryInspection; NOT_A_REPOSITORY carries the backend error text
    """
    logger = logging.getLogger('gitsync.engine.inspector')
    local_path = Path(local_path)

    if not local_path.exists():
        logger.debug(f"Directory state for {local_path}: ABSENT")
        return DirectoryInspection(state=DirectoryState.ABSENT, path=local_path)

    try:
        repo = open_repository(local_path)
    except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError) as e:
        # OSError: the directory exists but cannot be read
        logger.debug(f"Directory state for {local_path}: NOT_A_REPOSITORY ({e!r})")
        return DirectoryInspection(
            state=DirectoryState.NOT_A_REPOSITORY,
            path=local_path,
            error=f"{type(e).__name__}: {e}"
        )

    try:
        remote_name, remote_url = find_tracked_remote(repo)
    finally:
        repo.close()

    logger.debug(f"Directory state for {local_path}: REPOSITORY (remote {remote_name!r} -> {remote_url!r})")
    return DirectoryInspection(
        state=DirectoryState.REPOSITORY,
        path=local_path,
        remote_name=remote_name,
        remote_url=remote_url
    )


def is_empty_directory(local_path: Path) -> bool:
    """True when local_path is a directory with no entries at all."""
    local_path = Path(local_path)
    return local_path.is_dir() and not any(local_path.iterdir())
