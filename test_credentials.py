#!/usr/bin/env python3
"""
Unit tests for the git transport environment built from credentials.
"""

import os
import shlex
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from gitsync.config import Credentials
from gitsync.engine.credentials import (
    PASSPHRASE_ENV_VAR,
    build_git_environment,
    build_ssh_command,
    git_environment,
)


class TestCredentialEnvironment(unittest.TestCase):
    """GIT_SSH_COMMAND and askpass construction."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.key_path = self.temp_dir / "id_ed25519"
        self.key_path.write_text("not a real key")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_anonymous_transport_never_prompts(self):
        env = build_git_environment(None)

        self.assertEqual(env["GIT_TERMINAL_PROMPT"], "0")
        self.assertEqual(shlex.split(env["GIT_SSH_COMMAND"]), ["ssh", "-o", "BatchMode=yes"])
        self.assertNotIn("SSH_ASKPASS", env)

    def test_private_key_and_username(self):
        credentials = Credentials(username="deploy", private_key_path=self.key_path)

        parts = shlex.split(build_ssh_command(credentials))

        self.assertEqual(parts[0], "ssh")
        self.assertEqual(parts[parts.index("-i") + 1], self.key_path.as_posix())
        self.assertIn("IdentitiesOnly=yes", parts)
        self.assertEqual(parts[parts.index("-l") + 1], "deploy")
        self.assertIn("BatchMode=yes", parts)

    def test_username_without_key_is_left_to_the_url(self):
        parts = shlex.split(build_ssh_command(Credentials(username="deploy")))
        self.assertNotIn("-l", parts)
        self.assertNotIn("-i", parts)

    def test_key_path_with_spaces_is_quoted(self):
        spaced = self.temp_dir / "my keys" / "id_rsa"
        parts = shlex.split(build_ssh_command(Credentials(private_key_path=spaced)))
        self.assertEqual(parts[parts.index("-i") + 1], spaced.as_posix())

    def test_passphrase_requires_askpass_helper(self):
        credentials = Credentials(private_key_path=self.key_path, passphrase="s3cret")

        without_helper = build_git_environment(credentials)
        self.assertNotIn(PASSPHRASE_ENV_VAR, without_helper)

        helper = self.temp_dir / "askpass.sh"
        env = build_git_environment(credentials, askpass_path=helper)
        self.assertEqual(env["SSH_ASKPASS"], str(helper))
        self.assertEqual(env["SSH_ASKPASS_REQUIRE"], "force")
        self.assertEqual(env[PASSPHRASE_ENV_VAR], "s3cret")
        self.assertNotIn("BatchMode=yes", env["GIT_SSH_COMMAND"])

    def test_git_environment_removes_askpass_helper(self):
        credentials = Credentials(private_key_path=self.key_path, passphrase="s3cret")

        with git_environment(credentials) as env:
            helper = Path(env["SSH_ASKPASS"])
            self.assertTrue(helper.is_file())
            self.assertNotIn("s3cret", helper.read_text())
            if os.name != "nt":
                self.assertTrue(os.access(helper, os.X_OK))

        self.assertFalse(helper.exists())

    def test_git_environment_without_passphrase_writes_nothing(self):
        with git_environment(Credentials(private_key_path=self.key_path)) as env:
            self.assertNotIn("SSH_ASKPASS", env)

    def test_passphrase_hidden_from_repr(self):
        credentials = Credentials(private_key_path=self.key_path, passphrase="s3cret")
        self.assertNotIn("s3cret", repr(credentials))

    def test_key_path_string_is_normalized(self):
        credentials = Credentials(private_key_path="~/.ssh/id_rsa")
        self.assertIsInstance(credentials.private_key_path, Path)
        self.assertTrue(credentials.private_key_path.is_absolute())
        self.assertTrue(credentials.uses_private_key)


if __name__ == "__main__":
    unittest.main(verbosity=2)
