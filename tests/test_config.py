from __future__ import annotations

import os
from pathlib import Path

import pytest

from gptinvoice.config import load_config
from gptinvoice.errors import ConfigError


ENV_VARS = (
    "GPTINVOICE_OUTPUT_DIR",
    "GPTINVOICE_HEADLESS",
    "GPTINVOICE_SLOWMO_MS",
    "GPTINVOICE_HOME",
    "GPTINVOICE_DEBUG_DIR",
    "GPTINVOICE_SELECTOR_TIMEOUT_MS",
    "GPTINVOICE_DOWNLOAD_TIMEOUT_MS",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults_without_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    cfg = load_config(tmp_path / "missing.yaml")

    assert cfg.browser.headless is True
    assert "--no-sandbox" in cfg.browser.args
    assert cfg.download.output_dir == os.getcwd()
    assert cfg.download.selector_timeout_ms == 30_000
    assert cfg.download.download_timeout_ms == 30_000
    assert cfg.token_store.path == Path("~/.gptinvoice").expanduser() / "config"
    assert cfg.logging.level == "INFO"


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GPTINVOICE_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("GPTINVOICE_HEADLESS", "false")
    monkeypatch.setenv("GPTINVOICE_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("GPTINVOICE_DOWNLOAD_TIMEOUT_MS", "60000")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    cfg = load_config(None)

    assert cfg.download.output_dir == str(tmp_path / "out")
    assert cfg.browser.headless is False
    assert cfg.download.download_timeout_ms == 60_000
    assert cfg.token_store.path == tmp_path / "home" / "config"
    assert cfg.logging.level == "DEBUG"


def test_yaml_merges_over_env_and_expands_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INVOICE_ROOT", str(tmp_path / "books"))
    monkeypatch.setenv("GPTINVOICE_SLOWMO_MS", "250")
    cfg_path = _write(
        tmp_path,
        "config.yaml",
        """
download:
  output_dir: "${INVOICE_ROOT}/chatgpt"
  selector_timeout_ms: 45000
logging:
  level: WARNING
""",
    )

    cfg = load_config(cfg_path)

    assert cfg.download.output_dir == f"{tmp_path / 'books'}/chatgpt"
    assert cfg.download.selector_timeout_ms == 45_000
    # untouched keys keep their env-derived values
    assert cfg.download.download_timeout_ms == 30_000
    assert cfg.browser.slow_mo_ms == 250
    assert cfg.logging.level == "WARNING"


def test_non_positive_timeout_rejected(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path, "config.yaml", "download:\n  download_timeout_ms: 0\n")
    with pytest.raises(ConfigError, match="timeouts must be positive"):
        load_config(cfg_path)


def test_malformed_yaml_is_a_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(_write(tmp_path, "config.yaml", "download: [unclosed\n"))


def test_yaml_must_be_a_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        load_config(_write(tmp_path, "config.yaml", "- just\n- a list\n"))


def test_empty_yaml_is_fine(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, "config.yaml", ""))
    assert cfg.download.selector_timeout_ms == 30_000
