"""Configuration management for gitsync."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, normalize_path


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def is_relative_local_url(remote_url: str) -> bool:
    """
    Whether remote_url is a filesystem path relative to the working directory.

    git stores such a remote as an absolute path in the clone's config, so
    it can never match the configured URL verbatim.
    """
    if "://" in remote_url or Path(remote_url).is_absolute():
        return False
    # scp-like syntax: host:path, with no slash before the first colon
    host, sep, _ = remote_url.partition(":")
    if sep and host and "/" not in host:
        return False
    return True


@dataclass(frozen=True)
class Credentials:
    """SSH key credentials used for authenticated transport."""

    username: Optional[str] = None
    private_key_path: Optional[Path] = None
    passphrase: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if isinstance(self.private_key_path, str):
            object.__setattr__(self, 'private_key_path', normalize_path(self.private_key_path))

    @property
    def uses_private_key(self) -> bool:
        """Whether key-based authentication should be attempted."""
        return self.private_key_path is not None


@dataclass(frozen=True)
class SyncTarget:
    """
    A remote repository and the local directory that mirrors it.

    The local directory is owned exclusively by this target: nothing else
    may write to it while a bootstrap or sync call is running.
    """

    remote_url: str
    local_path: Path
    branch: Optional[str] = None
    credentials: Optional[Credentials] = None

    def __post_init__(self):
        """Validate and normalize the target after initialization."""
        if not self.remote_url or not str(self.remote_url).strip():
            raise ValueError("remote_url must be a non-empty string")
        if is_relative_local_url(self.remote_url):
            raise ValueError(
                f"remote_url must be a network URL or an absolute path, got relative path: {self.remote_url}"
            )

        # Remote URLs are compared verbatim, only the local path is normalized
        object.__setattr__(self, 'local_path', normalize_path(self.local_path))

        if self.branch is not None and not self.branch.strip():
            raise ValueError("branch must not be blank when provided")

    @property
    def lock_path(self) -> Path:
        """Advisory lock file guarding this target, kept beside the directory."""
        return self.local_path.parent / f".{self.local_path.name}.gitsync.lock"


@dataclass
class Config:
    """Configuration for a gitsync process with validation and defaults."""

    # Repository
    remote_url: str = ""
    local_path: Path = field(default_factory=Path.cwd)
    branch: Optional[str] = None

    # Credentials
    username: Optional[str] = None
    private_key_path: Optional[Path] = None
    passphrase: Optional[str] = field(default=None, repr=False)

    # Scheduling
    sync_interval: float = 30.0
    operation_timeout: Optional[float] = 300.0
    lock_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.local_path, str):
            self.local_path = Path(self.local_path)
        self.local_path = normalize_path(self.local_path)

        if isinstance(self.private_key_path, str):
            self.private_key_path = normalize_path(self.private_key_path)

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if self.sync_interval <= 0:
            raise ValueError("sync_interval must be positive")

        # A zero timeout means "no deadline"
        if self.operation_timeout is not None and self.operation_timeout < 0:
            raise ValueError("operation_timeout must be non-negative")
        if self.operation_timeout == 0:
            self.operation_timeout = None

        if self.lock_timeout < 0:
            raise ValueError("lock_timeout must be non-negative")

    @property
    def credentials(self) -> Optional[Credentials]:
        """Credential bundle, or None for anonymous transport."""
        if not (self.username or self.private_key_path or self.passphrase):
            return None
        return Credentials(
            username=self.username,
            private_key_path=self.private_key_path,
            passphrase=self.passphrase
        )

    def to_target(self) -> SyncTarget:
        """Build the SyncTarget described by this configuration."""
        return SyncTarget(
            remote_url=self.remote_url,
            local_path=self.local_path,
            branch=self.branch,
            credentials=self.credentials
        )


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_configuration() -> Config:
    """Load configuration from environment variables (and .env) with platform-specific defaults."""
    load_dotenv()

    platform_defaults = get_platform_specific_defaults()

    remote_url = _optional_env("GITSYNC_REMOTE_URL")
    local_path = _optional_env("GITSYNC_DIR")
    if not remote_url:
        raise ValueError("Configuration error: GITSYNC_REMOTE_URL is required")
    if not local_path:
        raise ValueError("Configuration error: GITSYNC_DIR is required")

    private_key = _optional_env("GITSYNC_PRIVATE_KEY")

    try:
        config = Config(
            remote_url=remote_url,
            local_path=Path(local_path),
            branch=_optional_env("GITSYNC_BRANCH"),
            username=_optional_env("GITSYNC_USERNAME"),
            private_key_path=Path(private_key) if private_key else None,
            passphrase=os.getenv("GITSYNC_PASSPHRASE") or None,
            sync_interval=float(os.getenv("GITSYNC_SYNC_EVERY", str(platform_defaults['sync_interval']))),
            operation_timeout=float(os.getenv("GITSYNC_TIMEOUT", str(platform_defaults['operation_timeout']))),
            lock_timeout=float(os.getenv("GITSYNC_LOCK_TIMEOUT", str(platform_defaults['lock_timeout']))),
            log_level=os.getenv("GITSYNC_LOG_LEVEL", platform_defaults['log_level']).upper()
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")

    logging.getLogger('gitsync.config').debug(f"Loaded configuration: {config}")
    return config


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    if not config.remote_url:
        errors.append("ERROR: remote_url is not configured")
    elif is_relative_local_url(config.remote_url):
        errors.append(f"ERROR: remote_url must be a network URL or an absolute path: {config.remote_url}")
    elif not config.remote_url.startswith(("http://", "https://", "git@", "ssh://", "git://", "file://", "/")):
        errors.append(f"WARNING: Git remote URL may be invalid: {config.remote_url}")

    if config.local_path.exists() and not config.local_path.is_dir():
        errors.append(f"ERROR: local path exists and is not a directory: {config.local_path}")

    if config.private_key_path is not None:
        if not config.private_key_path.is_file():
            errors.append(f"ERROR: private key not found: {config.private_key_path}")
        if config.remote_url.startswith(("http://", "https://")):
            errors.append("WARNING: private key is ignored for HTTP(S) remotes")

    if config.passphrase and config.private_key_path is None:
        errors.append("WARNING: passphrase is set but no private key is configured")

    if config.sync_interval < 5:
        errors.append("WARNING: sync intervals under 5 seconds may overload the remote")

    return errors
