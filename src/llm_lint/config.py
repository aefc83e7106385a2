"""Configuration loading and validation for LLM Lint."""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_EXCLUDE_PATTERNS = [
    "**/.git/**",
    "**/.vscode/**",
    "**/node_modules/**",
    "**/out/**",
    "**/dist/**",
    "**/build/**",
]


@dataclass
class LLMConfig:
    """Local model server configuration."""

    model: str = "qwen3-30b-a3b-mlx"
    host: str = "localhost"
    port: int = 1234
    threads: int = 4  # 0 = server default
    timeout_seconds: int = 120
    use_function_calling: bool = True

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/v1"


@dataclass
class ReviewSettings:
    """Which documents get reviewed, and when."""

    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    include_patterns: list[str] = field(default_factory=list)
    auto_review_on_open: bool = True
    auto_review_on_save: bool = True
    show_in_problems_tab: bool = True
    cooldown_seconds: float = 30.0


@dataclass
class ServerSettings:
    """Editor bridge configuration."""

    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class Config:
    """Complete application configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    review: ReviewSettings = field(default_factory=ReviewSettings)
    server: ServerSettings = field(default_factory=ServerSettings)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file (default: llm-lint.yaml)

    Returns:
        Loaded configuration
    """
    if config_path is None:
        config_path = Path("llm-lint.yaml")
        if not config_path.exists():
            config_path = Path("llm-lint.example.yaml")

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}

    raw_config = _expand_env_vars(raw_config)

    return _parse_config(raw_config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in config."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            return os.environ.get(env_var, "")
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _as_number(value: Any, convert: Callable[[Any], Any]) -> Any:
    """Convert a numeric setting, leaving unparseable values for validate_config."""
    try:
        return convert(value)
    except (TypeError, ValueError):
        return value


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw config dict into Config object."""
    llm_raw = raw.get("llm") or {}
    llm = LLMConfig(
        model=llm_raw.get("model") or os.environ.get("LLM_LINT_MODEL", "qwen3-30b-a3b-mlx"),
        host=llm_raw.get("host", "localhost"),
        port=_as_number(llm_raw.get("port") or os.environ.get("LLM_LINT_PORT") or 1234, int),
        threads=_as_number(llm_raw.get("threads", 4), int),
        timeout_seconds=_as_number(llm_raw.get("timeout_seconds", 120), int),
        use_function_calling=llm_raw.get("use_function_calling", True),
    )

    review_raw = raw.get("review") or {}
    review = ReviewSettings(
        exclude_patterns=_as_list(review_raw.get("exclude_patterns", DEFAULT_EXCLUDE_PATTERNS)),
        include_patterns=_as_list(review_raw.get("include_patterns")),
        auto_review_on_open=review_raw.get("auto_review_on_open", True),
        auto_review_on_save=review_raw.get("auto_review_on_save", True),
        show_in_problems_tab=review_raw.get("show_in_problems_tab", True),
        cooldown_seconds=_as_number(review_raw.get("cooldown_seconds", 30.0), float),
    )

    server_raw = raw.get("server") or {}
    server = ServerSettings(
        host=server_raw.get("host", "127.0.0.1"),
        port=_as_number(server_raw.get("port", 8765), int),
    )

    return Config(llm=llm, review=review, server=server)


def _check_range(
    errors: list[str], name: str, value: Any, low: float, high: float | None = None
) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(f"{name} must be a number, got {value!r}")
    elif value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f">= {low}"
        errors.append(f"{name} must be {bounds}, got {value}")


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors: list[str] = []

    if not config.llm.model:
        errors.append("Missing model name (set LLM_LINT_MODEL or llm.model)")

    _check_range(errors, "llm.port", config.llm.port, 1, 65535)
    _check_range(errors, "llm.threads", config.llm.threads, 0)
    _check_range(errors, "llm.timeout_seconds", config.llm.timeout_seconds, 1)
    _check_range(errors, "review.cooldown_seconds", config.review.cooldown_seconds, 0)
    _check_range(errors, "server.port", config.server.port, 1, 65535)

    return errors
