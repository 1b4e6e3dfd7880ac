#!/usr/bin/env python3
"""
Unit tests for configuration loading and validation.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent))

from gitsync.config import Config, SyncTarget, is_relative_local_url, load_configuration, validate_configuration


class TestSyncTarget(unittest.TestCase):
    """SyncTarget construction rules."""

    def test_blank_remote_url_is_rejected(self):
        for url in ("", "   "):
            with self.subTest(url=url):
                with self.assertRaises(ValueError):
                    SyncTarget(remote_url=url, local_path=Path("/tmp/x"))

    def test_blank_branch_is_rejected(self):
        with self.assertRaises(ValueError):
            SyncTarget(remote_url="https://example.com/r.git", local_path=Path("/tmp/x"), branch=" ")

    def test_remote_url_is_kept_verbatim(self):
        target = SyncTarget(remote_url="https://example.com/r.git/", local_path=Path("/tmp/x"))
        self.assertEqual(target.remote_url, "https://example.com/r.git/")

    def test_relative_local_path_remote_is_rejected(self):
        for url in ("srv/remote.git", "./remote.git", "../remote.git", "remote.git"):
            with self.subTest(url=url):
                with self.assertRaises(ValueError) as ctx:
                    SyncTarget(remote_url=url, local_path=Path("/tmp/x"))
                self.assertIn("absolute path", str(ctx.exception))

    def test_absolute_and_network_remotes_are_accepted(self):
        for url in (
            "/srv/remote.git",
            "file:///srv/remote.git",
            "https://example.com/r.git",
            "ssh://git@example.com/r.git",
            "git@example.com:team/r.git",
        ):
            with self.subTest(url=url):
                self.assertFalse(is_relative_local_url(url))
                self.assertEqual(SyncTarget(remote_url=url, local_path=Path("/tmp/x")).remote_url, url)

    def test_lock_file_is_a_sibling_of_the_directory(self):
        target = SyncTarget(remote_url="https://example.com/r.git", local_path=Path("/tmp/work/site"))
        self.assertEqual(target.lock_path.parent, target.local_path.parent)
        self.assertEqual(target.lock_path.name, ".site.gitsync.lock")


class TestConfig(unittest.TestCase):
    """Config dataclass validation."""

    def test_defaults(self):
        config = Config(remote_url="https://example.com/r.git", local_path=Path("/tmp/x"))
        self.assertEqual(config.sync_interval, 30.0)
        self.assertEqual(config.operation_timeout, 300.0)
        self.assertEqual(config.log_level, "INFO")
        self.assertIsNone(config.credentials)

    def test_zero_timeout_means_unbounded(self):
        config = Config(remote_url="u", local_path=Path("/tmp/x"), operation_timeout=0)
        self.assertIsNone(config.operation_timeout)

    def test_invalid_values_raise(self):
        cases = [
            {"log_level": "LOUD"},
            {"sync_interval": 0},
            {"operation_timeout": -1},
            {"lock_timeout": -1},
        ]
        for kwargs in cases:
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    Config(remote_url="u", local_path=Path("/tmp/x"), **kwargs)

    def test_log_level_is_case_insensitive(self):
        self.assertEqual(Config(remote_url="u", local_path=Path("/tmp/x"), log_level="debug").log_level, "DEBUG")

    def test_to_target_carries_credentials(self):
        config = Config(
            remote_url="git@example.com:team/r.git",
            local_path=Path("/tmp/x"),
            branch="main",
            username="deploy",
            private_key_path=Path("/keys/id_rsa")
        )

        target = config.to_target()

        self.assertEqual(target.remote_url, "git@example.com:team/r.git")
        self.assertEqual(target.branch, "main")
        self.assertEqual(target.credentials.username, "deploy")
        self.assertTrue(target.credentials.uses_private_key)


class TestLoadConfiguration(unittest.TestCase):
    """Environment variable loading."""

    def setUp(self):
        self.dotenv_patcher = patch("gitsync.config.load_dotenv")
        self.dotenv_patcher.start()

    def tearDown(self):
        self.dotenv_patcher.stop()

    def test_reads_environment(self):
        env = {
            "GITSYNC_REMOTE_URL": "https://example.com/r.git",
            "GITSYNC_DIR": "/srv/site",
            "GITSYNC_BRANCH": "release",
            "GITSYNC_USERNAME": "deploy",
            "GITSYNC_SYNC_EVERY": "12.5",
            "GITSYNC_TIMEOUT": "0",
            "GITSYNC_LOCK_TIMEOUT": "5",
            "GITSYNC_LOG_LEVEL": "warning",
        }
        with patch.dict("os.environ", env, clear=True):
            config = load_configuration()

        self.assertEqual(config.remote_url, "https://example.com/r.git")
        self.assertEqual(config.local_path.name, "site")
        self.assertEqual(config.branch, "release")
        self.assertEqual(config.username, "deploy")
        self.assertEqual(config.sync_interval, 12.5)
        self.assertIsNone(config.operation_timeout)
        self.assertEqual(config.lock_timeout, 5.0)
        self.assertEqual(config.log_level, "WARNING")

    def test_missing_required_variables(self):
        for env in ({"GITSYNC_DIR": "/srv/site"}, {"GITSYNC_REMOTE_URL": "https://example.com/r.git"}):
            with self.subTest(env=env):
                with patch.dict("os.environ", env, clear=True):
                    with self.assertRaises(ValueError) as ctx:
                        load_configuration()
                self.assertIn("Configuration error", str(ctx.exception))

    def test_unparseable_number_is_a_configuration_error(self):
        env = {
            "GITSYNC_REMOTE_URL": "https://example.com/r.git",
            "GITSYNC_DIR": "/srv/site",
            "GITSYNC_SYNC_EVERY": "often",
        }
        with patch.dict("os.environ", env, clear=True):
            with self.assertRaises(ValueError) as ctx:
                load_configuration()
        self.assertIn("Configuration error", str(ctx.exception))


class TestValidateConfiguration(unittest.TestCase):
    """Non-fatal configuration review."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_clean_configuration(self):
        config = Config(remote_url="https://example.com/r.git", local_path=self.temp_dir / "site")
        self.assertEqual(validate_configuration(config), [])

    def test_missing_private_key_is_an_error(self):
        config = Config(
            remote_url="git@example.com:r.git",
            local_path=self.temp_dir / "site",
            private_key_path=self.temp_dir / "missing_key"
        )
        issues = validate_configuration(config)
        self.assertTrue(any(issue.startswith("ERROR:") and "private key" in issue for issue in issues))

    def test_local_path_that_is_a_file_is_an_error(self):
        path = self.temp_dir / "site"
        path.write_text("x")
        issues = validate_configuration(Config(remote_url="https://example.com/r.git", local_path=path))
        self.assertTrue(any(issue.startswith("ERROR:") for issue in issues))

    def test_relative_remote_is_an_error(self):
        config = Config(remote_url="srv/remote.git", local_path=self.temp_dir / "site")
        issues = validate_configuration(config)
        self.assertEqual(len(issues), 1)
        self.assertTrue(issues[0].startswith("ERROR:"))

    def test_warnings(self):
        config = Config(
            remote_url="ftp://example.com/r.git",
            local_path=self.temp_dir / "site",
            passphrase="x",
            sync_interval=1
        )
        issues = validate_configuration(config)
        self.assertEqual(len(issues), 3)
        self.assertTrue(all(issue.startswith("WARNING:") for issue in issues))


if __name__ == "__main__":
    unittest.main(verbosity=2)
