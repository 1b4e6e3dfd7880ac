"""Cross-platform compatibility utilities for gitsync."""

import platform
from pathlib import Path
from typing import Optional, Dict, Any, Union
from enum import Enum


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class PlatformInfo:
    """Platform information and utilities."""

    def __init__(self):
        """Initialize platform detection."""
        self._platform_type = self._detect_platform()
        self._is_windows = self._platform_type == PlatformType.WINDOWS

    def _detect_platform(self) -> PlatformType:
        """Detect the current platform."""
        system = platform.system().lower()

        if system == "windows":
            return PlatformType.WINDOWS
        elif system == "darwin":
            return PlatformType.MACOS
        elif system == "linux":
            return PlatformType.LINUX
        else:
            return PlatformType.UNKNOWN

    @property
    def is_windows(self) -> bool:
        """Check if running on Windows."""
        return self._is_windows

    def get_platform_name(self) -> str:
        """Get human-readable platform name."""
        return self._platform_type.value


# Global platform info instance
_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    """Get the global platform info instance."""
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    The path does not need to exist; symlinks in existing components
    are resolved.

    Args:
        path: Path to normalize

    Returns:
        Normalized absolute Path object
    """
    if isinstance(path, str):
        path = Path(path)

    # Expand user home directory (~) first, then resolve to absolute path
    return path.expanduser().resolve()


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Get platform-specific configuration defaults.

    Returns:
        Dictionary of platform-specific defaults
    """
    platform_info = get_platform_info()

    defaults = {
        'log_level': "INFO",
        'sync_interval': 30.0,
        'operation_timeout': 300.0,
        'lock_timeout': 30.0,
        'stale_lock_age': 3600.0
    }

    if platform_info.is_windows:
        # Process spawning and file handles are slower to release on Windows
        defaults.update({
            'lock_timeout': 60.0,
        })

    return defaults
