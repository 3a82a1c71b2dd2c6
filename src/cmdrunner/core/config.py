"""Configuration system for the command runner.

Provides configuration loading, merging, and validation with precedence:
1. Environment variables (highest)
2. Project config (.cmdrunner/config.json)
3. User profile (~/.cmdrunner/profiles/<name>.json)
4. Defaults (lowest)
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from cmdrunner.core.command_executor import DEFAULT_OUTPUT_MODE
from cmdrunner.core.exceptions import ConfigurationError

EXECUTOR_CHOICES = ("auto", "fork", "subprocess")
LOG_LEVEL_CHOICES = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR")


@dataclass
class RunnerConfig:
    """Settings for how commands are spawned.

    Attributes:
        executor: Spawn backend; "auto" picks fork where available
        shell: Interpreter used by shell runs; empty means the platform default
        output_mode: Permission bits for redirection files the runner creates
        log_level: Level for CommandRunnerLogger when the CLI builds one
    """

    executor: str = "auto"
    shell: str = ""
    output_mode: int = DEFAULT_OUTPUT_MODE
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for key in ("executor", "shell", "log_level"):
            value = getattr(self, key)
            if not isinstance(value, str):
                raise ConfigurationError(
                    f"{key} must be a string, got {type(value).__name__}",
                    key=key,
                )
        if self.executor not in EXECUTOR_CHOICES:
            raise ConfigurationError(
                f"executor must be one of {', '.join(EXECUTOR_CHOICES)}, got {self.executor!r}",
                key="executor",
            )
        if (
            not isinstance(self.output_mode, int)
            or isinstance(self.output_mode, bool)
            or not 0 <= self.output_mode <= 0o777
        ):
            raise ConfigurationError(
                f"output_mode must be between 0o000 and 0o777, got {self.output_mode!r}",
                key="output_mode",
            )
        if self.log_level.upper() not in LOG_LEVEL_CHOICES:
            raise ConfigurationError(
                f"log_level must be one of {', '.join(LOG_LEVEL_CHOICES)}, got {self.log_level!r}",
                key="log_level",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunnerConfig":
        """Create config from dictionary, ignoring unknown keys."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        if isinstance(filtered.get("output_mode"), str):
            filtered["output_mode"] = _parse_mode(filtered["output_mode"], "output_mode")
        return cls(**filtered)


def _parse_mode(value: str, key: str) -> int:
    try:
        return int(value, 8)
    except ValueError as e:
        raise ConfigurationError(f"Invalid octal mode for {key}: {value}", key=key) from e


def _read_json_object(path: Path, label: str) -> dict[str, Any]:
    try:
        with path.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {label}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load {label}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid {label}: expected a JSON object")
    return data


def load_user_config(profile_name: str = "default") -> RunnerConfig:
    """Load user configuration from ~/.cmdrunner/profiles/<name>.json.

    Args:
        profile_name: Name of profile to load (default: "default")

    Returns:
        RunnerConfig loaded from profile, or default config if not found

    Raises:
        ConfigurationError: If profile file is invalid
    """
    profile_path = Path.home() / ".cmdrunner" / "profiles" / f"{profile_name}.json"

    if not profile_path.exists():
        return RunnerConfig()

    return RunnerConfig.from_dict(_read_json_object(profile_path, f"profile {profile_name}"))


def load_project_config(project_root: Path | None = None) -> dict[str, Any] | None:
    """Load project-specific settings from .cmdrunner/config.json.

    Only the keys the file sets are returned, so a project can put a value
    back to its default over a profile that changed it.

    Args:
        project_root: Directory holding .cmdrunner/config.json (default: cwd)

    Returns:
        Validated, normalized settings the file sets, or None if there is no file

    Raises:
        ConfigurationError: If the file is invalid
    """
    if project_root is None:
        project_root = Path.cwd()

    config_path = project_root / ".cmdrunner" / "config.json"

    if not config_path.exists():
        return None

    data = _read_json_object(config_path, "project config")
    config = RunnerConfig.from_dict(data)
    return {key: value for key, value in config.to_dict().items() if key in data}


def load_env_overrides() -> dict[str, Any]:
    """Load configuration overrides from environment variables.

    Supported environment variables:
    - CMDRUNNER_EXECUTOR: Spawn backend (auto, fork, subprocess)
    - CMDRUNNER_SHELL: Interpreter for shell runs
    - CMDRUNNER_OUTPUT_MODE: Octal permission bits for redirection files
    - CMDRUNNER_LOG_LEVEL: Log level

    Returns:
        Dictionary of configuration overrides
    """
    overrides: dict[str, Any] = {}

    if executor := os.getenv("CMDRUNNER_EXECUTOR"):
        overrides["executor"] = executor.lower()

    if shell := os.getenv("CMDRUNNER_SHELL"):
        overrides["shell"] = shell

    if mode_str := os.getenv("CMDRUNNER_OUTPUT_MODE"):
        overrides["output_mode"] = _parse_mode(mode_str, "CMDRUNNER_OUTPUT_MODE")

    if level := os.getenv("CMDRUNNER_LOG_LEVEL"):
        overrides["log_level"] = level.upper()

    return overrides


def merge_configs(
    base: RunnerConfig,
    project: dict[str, Any] | None = None,
    env_overrides: dict[str, Any] | None = None,
) -> RunnerConfig:
    """Merge configurations with precedence: env > project > base.

    Args:
        base: Base configuration (typically from user profile)
        project: Settings the project config sets (optional)
        env_overrides: Environment variable overrides (optional)

    Returns:
        Merged configuration
    """
    merged = base.to_dict()

    if project:
        merged.update(project)

    if env_overrides:
        merged.update(env_overrides)

    return RunnerConfig.from_dict(merged)


def load_config(profile_name: str = "default", project_root: Path | None = None) -> RunnerConfig:
    """Load and merge all configuration sources.

    Args:
        profile_name: User profile to load (default: "default")
        project_root: Project root directory (default: current directory)

    Returns:
        Merged configuration

    Raises:
        ConfigurationError: If any config source is invalid
    """
    base_config = load_user_config(profile_name)
    project_config = load_project_config(project_root)
    env_overrides = load_env_overrides()

    return merge_configs(base_config, project_config, env_overrides)
