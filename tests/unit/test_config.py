"""Tests for VowConfig.from_env() and repo root detection."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from vow.config import DEFAULT_COOLDOWN_MS, VowConfig, get_repo_root


class TestFromEnv:
    def test_defaults(self, tmp_path, vow_env):
        config = VowConfig.from_env(tmp_path)
        assert config.root == tmp_path
        assert config.cooldown_ms == DEFAULT_COOLDOWN_MS
        assert config.debug is False
        assert config.rules_file is None
        assert config.use_default_rules is True

    def test_env_overrides(self, tmp_path, vow_env):
        vow_env.setenv("VOW_COOLDOWN_MS", "250")
        vow_env.setenv("VOW_DEBUG", "1")
        vow_env.setenv("VOW_RULES_FILE", "rules/vow.md")
        vow_env.setenv("VOW_NO_DEFAULT_RULES", "true")
        config = VowConfig.from_env(tmp_path)
        assert config.cooldown_ms == 250
        assert config.debug is True
        assert config.rules_file == Path("rules/vow.md")
        assert config.use_default_rules is False

    def test_bad_cooldown(self, tmp_path, vow_env):
        vow_env.setenv("VOW_COOLDOWN_MS", "soon")
        with pytest.raises(ValueError, match="integer"):
            VowConfig.from_env(tmp_path)

    def test_negative_cooldown(self, tmp_path, vow_env):
        vow_env.setenv("VOW_COOLDOWN_MS", "-1")
        with pytest.raises(ValueError, match=">= 0"):
            VowConfig.from_env(tmp_path)

    def test_debug_log_path(self, tmp_path):
        assert VowConfig(root=tmp_path).debug_log_path == tmp_path / ".vow-debug.log"


class TestGetRepoRoot:
    def test_uses_git_toplevel(self, tmp_path):
        fake = subprocess.CompletedProcess(args=[], returncode=0, stdout="/some/repo\n", stderr="")
        with patch("vow.config.subprocess.run", return_value=fake):
            assert get_repo_root(tmp_path) == Path("/some/repo")

    def test_falls_back_outside_repo(self, tmp_path):
        fake = subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal")
        with patch("vow.config.subprocess.run", return_value=fake):
            assert get_repo_root(tmp_path) == tmp_path

    def test_falls_back_without_git(self, tmp_path):
        with patch("vow.config.subprocess.run", side_effect=FileNotFoundError("git")):
            assert get_repo_root(tmp_path) == tmp_path
