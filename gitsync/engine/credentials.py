"""
Transport credentials for clone and fetch.

Git reads SSH settings from the environment of the process it runs in.
This module turns an explicit Credentials bundle into that environment;
it never looks for keys in the user's home directory on its own.
"""

import logging
import os
import shlex
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from ..config import Credentials
from ..platform import get_platform_info


PASSPHRASE_ENV_VAR = "GITSYNC_SSH_PASSPHRASE"


def build_ssh_command(credentials: Optional[Credentials], batch_mode: bool = True) -> str:
    """
    Build the ``ssh`` command line git should use.

    Without a private key only non-interactive, key-less transport is
    configured. With a key, ``IdentitiesOnly`` restricts ssh to that key
    and the username (when given) overrides the one embedded in the URL.
    """
    parts = ["ssh"]
    if credentials is not None and credentials.uses_private_key:
        parts.extend(["-i", Path(credentials.private_key_path).as_posix(), "-o", "IdentitiesOnly=yes"])
        if credentials.username:
            parts.extend(["-l", credentials.username])
    if batch_mode:
        parts.extend(["-o", "BatchMode=yes"])
    return shlex.join(parts)


def build_git_environment(
    credentials: Optional[Credentials],
    askpass_path: Optional[Path] = None
) -> Dict[str, str]:
    """
    Environment overrides for git processes using the given credentials.

    Args:
        credentials: Credential bundle, or None for anonymous transport
        askpass_path: Helper program that prints the key passphrase; required
            for the passphrase to be used

    Returns:
        Mapping of environment variables to add on top of os.environ
    """
    # Fail instead of prompting on a terminal nobody is watching
    env = {
        "GIT_TERMINAL_PROMPT": "0",
        "GCM_INTERACTIVE": "never",
    }

    use_passphrase = (
        credentials is not None
        and credentials.uses_private_key
        and bool(credentials.passphrase)
        and askpass_path is not None
    )

    # BatchMode would stop ssh from asking the askpass helper
    env["GIT_SSH_COMMAND"] = build_ssh_command(credentials, batch_mode=not use_passphrase)

    if use_passphrase:
        env.update({
            "SSH_ASKPASS": str(askpass_path),
            "SSH_ASKPASS_REQUIRE": "force",
            "DISPLAY": os.environ.get("DISPLAY", ":0"),
            PASSPHRASE_ENV_VAR: credentials.passphrase,
        })

    return env


def _write_askpass_helper() -> Path:
    """Write a helper program that echoes the passphrase from the environment."""
    if get_platform_info().is_windows:
        fd, path = tempfile.mkstemp(prefix="gitsync-askpass-", suffix=".bat")
        content = f"@echo off\r\necho %{PASSPHRASE_ENV_VAR}%\r\n"
    else:
        fd, path = tempfile.mkstemp(prefix="gitsync-askpass-", suffix=".sh")
        content = f"#!/bin/sh\nprintf '%s\\n' \"${PASSPHRASE_ENV_VAR}\"\n"

    with os.fdopen(fd, "w") as f:
        f.write(content)
    os.chmod(path, stat.S_IRWXU)
    return Path(path)


@contextmanager
def git_environment(credentials: Optional[Credentials]) -> Generator[Dict[str, str], None, None]:
    """
    Context manager yielding the environment for authenticated git calls.

    A temporary askpass helper is created when the key has a passphrase
    and removed on exit. The passphrase itself is only ever passed through
    the environment, never written to disk.
    """
    logger = logging.getLogger('gitsync.engine.credentials')
    askpass_path = None

    if credentials is not None and credentials.uses_private_key:
        if not Path(credentials.private_key_path).is_file():
            logger.warning(f"Private key not found: {credentials.private_key_path}")
        if credentials.passphrase:
            askpass_path = _write_askpass_helper()

    try:
        yield build_git_environment(credentials, askpass_path)
    finally:
        if askpass_path is not None:
            try:
                askpass_path.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove askpass helper {askpass_path}: {e}")
