"""Tests for hookwarden.core.config module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from hookwarden.core.config import HookConfig, LockConfig
from hookwarden.core.errors import ConfigurationError


class TestHookConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        config = HookConfig()
        assert config.enable_linting is True
        assert config.development_mode is False
        assert config.performance_threshold == 10000
        assert config.optimization_threshold == 5000
        assert config.max_recovery_attempts == 3
        assert config.enable_auto_recovery is True
        assert config.state_backend == "git"
        assert config.protected_branches == ["main", "master", "production"]

    def test_default_paths(self):
        config = HookConfig()
        assert config.paths.journal == "activeContext.md"
        assert config.paths.audit_log == ".git/hookwarden/audit.log"
        assert config.paths.performance == ".git/hookwarden/performance.json"

    def test_build_command_unset_by_default(self):
        assert HookConfig().commands.build is None


class TestHookConfigParsing:
    """Tests for YAML parsing and aliases."""

    def test_snake_case_yaml(self):
        config = HookConfig.from_yaml_string(
            "development_mode: true\nperformance_threshold: 8000\n"
        )
        assert config.development_mode is True
        assert config.performance_threshold == 8000

    def test_camel_case_aliases(self):
        config = HookConfig.from_yaml_string(
            "enableLinting: false\nperformanceThreshold: 7000\nmaxRecoveryAttempts: 5\n"
        )
        assert config.enable_linting is False
        assert config.performance_threshold == 7000
        assert config.max_recovery_attempts == 5

    def test_empty_yaml_gives_defaults(self):
        assert HookConfig.from_yaml_string("") == HookConfig()

    def test_commands_can_be_disabled(self):
        config = HookConfig.from_yaml_string("commands:\n  linter: null\n")
        assert config.commands.linter is None
        assert config.commands.formatter == ["ruff", "format"]

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValidationError):
            HookConfig(performance_threshold=-1)

    def test_optimization_threshold_cannot_exceed_performance_threshold(self):
        with pytest.raises(ValidationError, match="optimization_threshold"):
            HookConfig(performance_threshold=1000, optimization_threshold=2000)

    def test_lock_delay_range_validated(self):
        with pytest.raises(ValidationError, match="min_delay_seconds"):
            LockConfig(min_delay_seconds=2.0, max_delay_seconds=1.0)

    def test_stale_threshold_must_exceed_locked_timeouts(self):
        with pytest.raises(ValidationError, match="stale_seconds"):
            HookConfig(locks=LockConfig(stale_seconds=10))
        with pytest.raises(ValidationError, match="stale_seconds"):
            HookConfig.from_yaml_string("timeouts:\n  fastTests: 90\n")
        assert HookConfig(locks=LockConfig(stale_seconds=31)).locks.stale_seconds == 31

    def test_from_yaml_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("protected_branches: [trunk]\n")
        assert HookConfig.from_yaml(path).protected_branches == ["trunk"]


class TestIsProtected:
    """Tests for HookConfig.is_protected."""

    def test_plain_branch_name(self):
        assert HookConfig().is_protected("main") is True
        assert HookConfig().is_protected("feature/x") is False

    def test_full_ref_name(self):
        assert HookConfig().is_protected("refs/heads/master") is True

    def test_none_is_not_protected(self):
        assert HookConfig().is_protected(None) is False


class TestHookConfigLoad:
    """Tests for HookConfig.load with file and environment overrides."""

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        config = HookConfig.load(tmp_path, env={})
        assert config == HookConfig()

    def test_reads_repository_file(self, tmp_path: Path):
        (tmp_path / ".hookwarden.yaml").write_text("enable_testing: false\n")
        assert HookConfig.load(tmp_path, env={}).enable_testing is False

    def test_dev_mode_override(self, tmp_path: Path):
        config = HookConfig.load(tmp_path, env={"HOOKWARDEN_DEV_MODE": "true"})
        assert config.development_mode is True

    def test_dev_mode_override_ignores_falsy_values(self, tmp_path: Path):
        config = HookConfig.load(tmp_path, env={"HOOKWARDEN_DEV_MODE": "0"})
        assert config.development_mode is False

    def test_performance_threshold_override_caps_optimization_threshold(self, tmp_path: Path):
        config = HookConfig.load(tmp_path, env={"HOOKWARDEN_PERFORMANCE_THRESHOLD": "2000"})
        assert config.performance_threshold == 2000
        assert config.optimization_threshold == 2000

    def test_non_integer_threshold_override(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="must be an integer"):
            HookConfig.load(tmp_path, env={"HOOKWARDEN_PERFORMANCE_THRESHOLD": "fast"})

    def test_disable_auto_recovery_override(self, tmp_path: Path):
        config = HookConfig.load(tmp_path, env={"HOOKWARDEN_DISABLE_AUTO_RECOVERY": "yes"})
        assert config.enable_auto_recovery is False

    def test_invalid_file_raises_configuration_error(self, tmp_path: Path):
        (tmp_path / ".hookwarden.yaml").write_text("performance_threshold: -5\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            HookConfig.load(tmp_path, env={})

    def test_malformed_yaml_raises_configuration_error(self, tmp_path: Path):
        (tmp_path / ".hookwarden.yaml").write_text("commands: [unclosed\n")
        with pytest.raises(ConfigurationError):
            HookConfig.load(tmp_path, env={})
