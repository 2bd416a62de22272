from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_HOME = "~/.gptinvoice"


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only defaults, so a `.env` file is enough for most setups.

    A YAML config (if present) is merged on top of these.
    """
    return {
        "browser": {
            "headless": _env_bool("GPTINVOICE_HEADLESS", default=True),
            "slow_mo_ms": _env_int("GPTINVOICE_SLOWMO_MS", 0),
        },
        "download": {
            "output_dir": os.getenv("GPTINVOICE_OUTPUT_DIR", "") or os.getcwd(),
            "selector_timeout_ms": _env_int("GPTINVOICE_SELECTOR_TIMEOUT_MS", 30_000),
            "download_timeout_ms": _env_int("GPTINVOICE_DOWNLOAD_TIMEOUT_MS", 30_000),
            "debug_dir": os.getenv("GPTINVOICE_DEBUG_DIR", ""),
        },
        "token_store": {
            "dir": os.getenv("GPTINVOICE_HOME", DEFAULT_HOME),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
    }


class BrowserConfig(BaseModel):
    headless: bool = True
    slow_mo_ms: int = 0
    # Needed for Chromium inside containers.
    args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-gpu",
            "--disable-dev-shm-usage",
        ]
    )


class DownloadConfig(BaseModel):
    output_dir: str = "."
    selector_timeout_ms: int = 30_000
    download_timeout_ms: int = 30_000
    # Empty means "don't save page snapshots on failure".
    debug_dir: str = ""

    @field_validator("selector_timeout_ms", "download_timeout_ms")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeouts must be positive (milliseconds)")
        return v


class TokenStoreConfig(BaseModel):
    dir: str = DEFAULT_HOME

    @property
    def path(self) -> Path:
        return Path(self.dir).expanduser() / "config"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    browser: BrowserConfig = BrowserConfig()
    download: DownloadConfig = DownloadConfig()
    token_store: TokenStoreConfig = TokenStoreConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            try:
                raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {p}: {e}") from e
            if not isinstance(raw, dict):
                raise ConfigError(f"Config file {p} must contain a mapping at the top level")
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    try:
        return AppConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
