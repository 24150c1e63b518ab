"""Configuration models for hookwarden.

All hook behavior is driven by a single ``HookConfig`` loaded from
``.hookwarden.yaml`` at the repository root. Option names are snake_case;
camelCase aliases (``enableLinting``, ``performanceThreshold``...) are
accepted so existing configuration files keep working.

Example YAML:
    development_mode: true
    performance_threshold: 5000
    commands:
      linter: ["ruff", "check", "--fix"]
      build: ["python", "-m", "build"]
    protected_branches: [main, release]
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from hookwarden.core import constants
from hookwarden.core.errors import ConfigurationError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PathsConfig(_ConfigModel):
    """Repository-relative locations of the files hooks read and write."""

    journal: str = Field(
        default=constants.JOURNAL_FILE,
        description="Running-context journal updated by commits",
    )
    metrics: str = Field(default=constants.METRICS_FILE)
    reports_dir: str = Field(default=constants.REPORTS_DIR)
    contexts_dir: str = Field(
        default=constants.CONTEXTS_DIR,
        description="Per-branch journal snapshots restored on checkout",
    )
    audit_log: str = Field(default=constants.AUDIT_LOG_FILE)
    lock_dir: str = Field(default=constants.LOCK_DIR)
    cache_file: str = Field(default=constants.TEST_CACHE_FILE)
    cache_dir: str = Field(default=constants.HOOK_CACHE_DIR)
    state_dir: str = Field(
        default=f"{constants.HOOKWARDEN_DIR}/state",
        description="Root directory of the file-based key/value store",
    )
    circuit_breaker: str = Field(
        default=f"{constants.HOOKWARDEN_DIR}/{constants.CIRCUIT_BREAKER_DOCUMENT}",
    )
    performance: str = Field(
        default=constants.PERFORMANCE_FILE,
        description="Execution history carried between hook processes",
    )


class CommandsConfig(_ConfigModel):
    """External tool invocations as argument lists.

    A command set to null disables the step that needs it; the step then
    reports ``skipped`` or ``warning`` as documented per pipeline.
    """

    linter: list[str] | None = Field(default_factory=lambda: ["ruff", "check", "--fix"])
    formatter: list[str] | None = Field(default_factory=lambda: ["ruff", "format"])
    fast_tests: list[str] | None = Field(
        default_factory=lambda: ["python", "-m", "pytest", "-x", "-q", "--no-header"],
    )
    full_tests: list[str] | None = Field(
        default_factory=lambda: [
            "python", "-m", "pytest", "-q", "--cov", "--cov-report=term",
        ],
    )
    build: list[str] | None = None
    security_scan: list[str] | None = Field(
        default_factory=lambda: ["pip-audit", "--format", "json"],
    )
    docs: list[str] | None = None
    workflow: list[str] | None = Field(
        default=None,
        description="Integration workflow run after merges",
    )


class TimeoutConfig(_ConfigModel):
    """Per-command timeouts in seconds."""

    fast_tests: float = Field(default=15.0, gt=0)
    full_tests: float = Field(default=120.0, gt=0)
    build: float = Field(default=180.0, gt=0)
    security_scan: float = Field(default=120.0, gt=0)
    docs: float = Field(default=30.0, gt=0)
    workflow: float = Field(default=120.0, gt=0)
    lint: float = Field(default=60.0, gt=0)
    git: float = Field(default=30.0, gt=0)


class LockConfig(_ConfigModel):
    """Named-lock acquisition behavior."""

    retries: int = Field(default=constants.LOCK_RETRIES, ge=1)
    min_delay_seconds: float = Field(default=constants.LOCK_MIN_DELAY_SECONDS, ge=0)
    max_delay_seconds: float = Field(default=constants.LOCK_MAX_DELAY_SECONDS, ge=0)
    stale_seconds: float = Field(default=constants.LOCK_STALE_SECONDS, gt=0)

    @model_validator(mode="after")
    def _check_delay_range(self) -> LockConfig:
        if self.min_delay_seconds > self.max_delay_seconds:
            raise ValueError("min_delay_seconds must not exceed max_delay_seconds")
        return self


class NotificationsConfig(_ConfigModel):
    """Where post-commit workflow notifications are sent.

    Example YAML:
        notifications:
          backend: webhook
          url_env: HOOKWARDEN_WEBHOOK_URL
          headers:
            Authorization: "Bearer ${WEBHOOK_TOKEN}"
    """

    backend: Literal["log", "webhook", "none"] = "log"
    url: str | None = None
    url_env: str | None = "HOOKWARDEN_WEBHOOK_URL"
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=1, ge=0)
    retry_delay: float = Field(default=0.5, ge=0)


class HookConfig(_ConfigModel):
    """Top-level hook configuration."""

    enable_linting: bool = True
    enable_testing: bool = True
    enable_context_validation: bool = True
    enable_gatekeeper: bool = True
    development_mode: bool = False
    performance_threshold: int = Field(
        default=10000,
        gt=0,
        description="Milliseconds above which an execution counts as slow",
    )
    optimization_threshold: int = Field(
        default=5000,
        gt=0,
        description="Milliseconds above which optimization recommendations are produced",
    )
    max_recovery_attempts: int = Field(default=3, ge=0)
    enable_auto_recovery: bool = True

    coverage_threshold: float = Field(default=80.0, ge=0, le=100)
    lint_extensions: list[str] = Field(default_factory=lambda: [".py", ".pyi"])
    code_extensions: list[str] = Field(
        default_factory=lambda: [".py", ".pyi", ".js", ".ts", ".jsx", ".tsx"],
    )
    doc_extensions: list[str] = Field(
        default_factory=lambda: [".py", ".md", ".rst", ".js", ".ts"],
    )
    critical_files: list[str] = Field(
        default_factory=list,
        description="Files that must exist after a merge",
    )
    protected_branches: list[str] = Field(
        default_factory=lambda: list(constants.DEFAULT_PROTECTED_BRANCHES),
    )
    state_branch: str = constants.STATE_BRANCH
    state_backend: Literal["git", "file", "memory"] = "git"

    paths: PathsConfig = Field(default_factory=PathsConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    locks: LockConfig = Field(default_factory=LockConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)

    @model_validator(mode="after")
    def _check_thresholds(self) -> HookConfig:
        if self.optimization_threshold > self.performance_threshold:
            raise ValueError(
                "optimization_threshold must not exceed performance_threshold"
            )
        locked_timeout = max(self.timeouts.fast_tests, self.timeouts.git)
        if self.locks.stale_seconds <= locked_timeout:
            raise ValueError(
                f"locks.stale_seconds ({self.locks.stale_seconds}) must exceed the longest"
                f" timeout of an operation run under a lock ({locked_timeout})"
            )
        return self

    def is_protected(self, branch: str | None) -> bool:
        """Return True if the branch (or ``refs/heads/<branch>``) is protected."""
        if not branch:
            return False
        name = branch.removeprefix("refs/heads/")
        return name in self.protected_branches

    @classmethod
    def from_yaml(cls, path: Path) -> HookConfig:
        """Load hook configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> HookConfig:
        """Load hook configuration from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data or {})

    @classmethod
    def load(cls, repo_root: Path, env: dict[str, str] | None = None) -> HookConfig:
        """Load ``.hookwarden.yaml`` from the repository and apply env overrides.

        Environment overrides:
            HOOKWARDEN_DEV_MODE: enables development mode when truthy.
            HOOKWARDEN_PERFORMANCE_THRESHOLD: integer milliseconds.
            HOOKWARDEN_DISABLE_AUTO_RECOVERY: disables auto-recovery when truthy.

        Raises:
            ConfigurationError: If the file or an override is invalid.
        """
        env = dict(os.environ) if env is None else env
        config_path = repo_root / constants.CONFIG_FILE_NAME
        try:
            config = cls.from_yaml(config_path) if config_path.exists() else cls()
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

        overrides: dict[str, object] = {}
        if env.get("HOOKWARDEN_DEV_MODE", "").lower() in _TRUE_VALUES:
            overrides["development_mode"] = True
        if threshold := env.get("HOOKWARDEN_PERFORMANCE_THRESHOLD"):
            try:
                value = int(threshold)
            except ValueError as e:
                raise ConfigurationError(
                    f"HOOKWARDEN_PERFORMANCE_THRESHOLD must be an integer, got {threshold!r}"
                ) from e
            overrides["performance_threshold"] = value
            overrides["optimization_threshold"] = min(config.optimization_threshold, value)
        if env.get("HOOKWARDEN_DISABLE_AUTO_RECOVERY", "").lower() in _TRUE_VALUES:
            overrides["enable_auto_recovery"] = False
        if not overrides:
            return config

        try:
            return cls.model_validate({**config.model_dump(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment override: {e}") from e
