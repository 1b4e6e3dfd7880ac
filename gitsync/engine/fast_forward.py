"""Fetch the tracked branch and fast-forward the local checkout to it."""

import logging
from typing import Optional, Tuple

from git import Repo, Head, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..config import SyncTarget
from .clone import git_deadline, is_timeout_error
from .credentials import git_environment
from .error_types import ErrorCode
from .inspector import DEFAULT_REMOTE_NAME, find_tracked_remote, open_repository
from .performance_logger import get_performance_logger
from .repository_info import MergeAnalysis, MergeOutcome
from .utils import GitSyncResult, create_git_sync_result, failure


REFLOG_PREFIX = "gitsync"
MISSING_REMOTE_REF_MARKER = "couldn't find remote ref"


class DetachedHeadError(ValueError):
    """HEAD is detached and no branch was configured to follow."""


def find_head(repo: Repo, branch_name: str) -> Optional[Head]:
    """Local branch by name, or None when it does not exist yet."""
    return next((head for head in repo.heads if head.name == branch_name), None)


def current_branch_name(repo: Repo) -> Optional[str]:
    """Branch HEAD points at, or None when HEAD is detached."""
    if repo.head.is_detached:
        return None
    return repo.head.reference.name


def resolve_tracked_branch(repo: Repo, target: SyncTarget, remote_name: str) -> Tuple[str, str]:
    """
    Decide which local branch follows which remote ref.

    A configured branch is fetched into its remote-tracking ref. Without
    one, the remote's HEAD is fetched and the branch currently checked
    out follows it.

    Returns:
        Tuple of (local_branch_name, refspec)

    Raises:
        DetachedHeadError: no branch configured and HEAD is detached
    """
    if target.branch:
        branch = target.branch
        return branch, f"+refs/heads/{branch}:refs/remotes/{remote_name}/{branch}"

    branch = current_branch_name(repo)
    if branch is None:
        raise DetachedHeadError("HEAD is detached and no branch is configured to follow")
    return branch, "HEAD"


def fetch_tracked_branch(
    repo: Repo,
    remote_name: str,
    refspec: str,
    env: dict,
    timeout: Optional[float] = None
) -> str:
    """
    Fetch one refspec from the remote.

    Returns:
        Commit id of the fetched tip

    Raises:
        GitCommandError: fetch failed, timed out, or the ref is missing upstream
    """
    with get_performance_logger().time_operation("git_fetch", {"remote": remote_name, "refspec": refspec}):
        repo.git.fetch(remote_name, refspec, env=env, kill_after_timeout=git_deadline(timeout))
    return repo.git.rev_parse("--verify", "FETCH_HEAD^{commit}").strip()


def analyze_merge(repo: Repo, branch_name: str, fetched_revision: str) -> MergeAnalysis:
    """
    Classify the local branch tip against the fetched tip.

    Anything other than "identical" or "local is an ancestor of fetched"
    is divergence, including a local branch that is ahead of the remote.
    A local branch that does not exist yet can always be fast-forwarded.
    """
    head = find_head(repo, branch_name)
    if head is None:
        return MergeAnalysis(
            outcome=MergeOutcome.FAST_FORWARDABLE,
            local_revision=None,
            target_revision=fetched_revision
        )

    local_revision = head.commit.hexsha
    if local_revision == fetched_revision:
        outcome = MergeOutcome.UP_TO_DATE
    elif repo.is_ancestor(local_revision, fetched_revision):
        outcome = MergeOutcome.FAST_FORWARDABLE
    else:
        outcome = MergeOutcome.DIVERGED

    return MergeAnalysis(outcome=outcome, local_revision=local_revision, target_revision=fetched_revision)


def update_branch_ref(repo: Repo, branch_name: str, revision: str) -> Head:
    """Point the local branch at revision (creating it if needed) and attach HEAD to it."""
    commit = repo.commit(revision)
    logmsg = f"{REFLOG_PREFIX}: fast-forward {branch_name} to {revision}"

    head = find_head(repo, branch_name)
    if head is None:
        head = repo.create_head(branch_name, commit, logmsg=logmsg)
    elif head.commit.hexsha != revision:
        head.set_commit(commit, logmsg=logmsg)

    if current_branch_name(repo) != branch_name:
        repo.head.set_reference(head, logmsg=f"{REFLOG_PREFIX}: checkout {branch_name}")
    return head


def checkout_branch(repo: Repo, branch_name: str) -> None:
    """Force index and working tree to match the branch tip."""
    with get_performance_logger().time_operation("git_checkout", {"branch": branch_name}):
        repo.git.checkout("--force", branch_name, "--")


def apply_fast_forward(repo: Repo, branch_name: str, analysis: MergeAnalysis) -> GitSyncResult:
    """
    Move the branch ref to the fetched tip, then force-checkout.

    A checkout failure after the ref moved leaves the old tree in the index
    and working tree. Later syncs see that as local changes and refuse to
    run until `git checkout --force <branch>` is run by hand.
    """
    logger = logging.getLogger('gitsync.engine.sync')
    operation = "fast_forward"

    try:
        update_branch_ref(repo, branch_name, analysis.target_revision)
    except (GitCommandError, OSError, ValueError) as e:
        error_msg = f"Failed to move branch '{branch_name}' to {analysis.target_revision}: {e}"
        logger.error(error_msg)
        return failure(
            operation,
            ErrorCode.REF_UPDATE_FAILED,
            error_msg,
            branch=branch_name,
            target_revision=analysis.target_revision
        )

    try:
        checkout_branch(repo, branch_name)
    except (GitCommandError, OSError) as e:
        error_msg = f"Branch '{branch_name}' moved to {analysis.target_revision} but checkout failed: {e}"
        logger.error(error_msg)
        return failure(
            operation,
            ErrorCode.CHECKOUT_FAILED,
            error_msg,
            branch=branch_name,
            target_revision=analysis.target_revision
        )

    revision = repo.head.commit.hexsha
    logger.info(f"Fast-forwarded '{branch_name}' from {analysis.local_revision or '<new branch>'} to {revision}")
    return create_git_sync_result(
        success=True,
        message=f"Fast-forwarded '{branch_name}' to {revision}",
        operation=operation,
        merge_outcome=analysis.outcome,
        revision=revision,
        branch_used=branch_name,
        details={"previous_revision": analysis.local_revision}
    )


def fast_forward_repository(target: SyncTarget, timeout: Optional[float] = None) -> GitSyncResult:
    """
    Bring an existing, clean clone up to date with its remote.

    This function performs the following operations:
    1. Fetches the tracked branch (or the remote HEAD)
    2. Classifies local tip vs fetched tip
    3. Applies the update only when it is a fast-forward

    Callers must have checked the remote URL and the working tree first.

    Args:
        target: Target whose local_path holds the clone
        timeout: Seconds before the fetch is killed; None waits forever

    Returns:
        GitSyncResult; merge_outcome is set whenever classification ran
    """
    logger = logging.getLogger('gitsync.engine.sync')
    operation = "fast_forward"

    try:
        repo = open_repository(target.local_path)
    except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError) as e:
        error_msg = f"Cannot open repository at {target.local_path}: {e}"
        logger.error(error_msg)
        return failure(operation, ErrorCode.NOT_A_REPOSITORY, error_msg, path=str(target.local_path))

    try:
        remote_name = find_tracked_remote(repo)[0] or DEFAULT_REMOTE_NAME

        try:
            branch_name, refspec = resolve_tracked_branch(repo, target, remote_name)
        except (DetachedHeadError, TypeError) as e:
            error_msg = f"Cannot determine the branch to update: {e}"
            logger.error(error_msg)
            return failure(operation, ErrorCode.REF_UPDATE_FAILED, error_msg, path=str(target.local_path))

        logger.debug(f"Fetching {refspec} from {remote_name} for branch '{branch_name}'")
        try:
            with git_environment(target.credentials) as env:
                fetched_revision = fetch_tracked_branch(repo, remote_name, refspec, env, timeout)
        except GitCommandError as e:
            stderr = str(e.stderr or "")
            if MISSING_REMOTE_REF_MARKER in stderr:
                error_msg = f"Branch for refspec '{refspec}' no longer exists on {remote_name}"
                logger.error(error_msg)
                return failure(
                    operation,
                    ErrorCode.REMOTE_BRANCH_NOT_FOUND,
                    error_msg,
                    branch=branch_name,
                    refspec=refspec
                )
            timed_out = is_timeout_error(e)
            error_msg = f"Failed to fetch from {remote_name}: {stderr.strip() or e}"
            logger.error(error_msg)
            return failure(
                operation,
                ErrorCode.FETCH_FAILED,
                error_msg,
                branch=branch_name,
                refspec=refspec,
                timed_out=timed_out
            )
        except OSError as e:
            error_msg = f"Fetch could not be started: {e}"
            logger.error(error_msg)
            return failure(operation, ErrorCode.FETCH_FAILED, error_msg, branch=branch_name, timed_out=False)

        analysis = analyze_merge(repo, branch_name, fetched_revision)
        logger.debug(
            f"Merge analysis for '{branch_name}': {analysis.outcome.value} "
            f"(local {analysis.local_revision}, remote {analysis.target_revision})"
        )

        if analysis.outcome == MergeOutcome.DIVERGED:
            error_msg = (
                f"Cannot fast-forward '{branch_name}': local {analysis.local_revision} "
                f"is not an ancestor of remote {analysis.target_revision}"
            )
            logger.warning(error_msg)
            result = failure(
                operation,
                ErrorCode.FAST_FORWARD_NOT_POSSIBLE,
                error_msg,
                branch=branch_name,
                local_revision=analysis.local_revision,
                target_revision=analysis.target_revision
            )
            result.merge_outcome = analysis.outcome
            result.revision = repo.head.commit.hexsha
            return result

        if analysis.outcome == MergeOutcome.UP_TO_DATE and current_branch_name(repo) == branch_name:
            logger.info(f"No updates to '{branch_name}', already at {analysis.target_revision}")
            return create_git_sync_result(
                success=True,
                message=f"Already up to date at {analysis.target_revision}",
                operation=operation,
                merge_outcome=analysis.outcome,
                revision=analysis.target_revision,
                branch_used=branch_name
            )

        return apply_fast_forward(repo, branch_name, analysis)
    finally:
        repo.close()
