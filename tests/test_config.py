"""Tests for tallybook config loading."""

import os
import tempfile

import pytest

from tallybook.config import TallybookConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ANTHROPIC_API_KEY",
        "DETECTLANGUAGE_API_KEY",
        "SUPABASE_URL",
        "SUPABASE_KEY",
        "TALLYBOOK_USER_ID",
    ):
        monkeypatch.delenv(name, raising=False)


def _load_toml(content: bytes) -> TallybookConfig:
    with tempfile.NamedTemporaryFile(suffix=".toml", delete=False) as f:
        f.write(content)
        f.flush()
        config = load_config(f.name)
    os.unlink(f.name)
    return config


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, TallybookConfig)
    assert config.user.user_id == ""
    assert config.ocr.backend == "tesseract"
    assert config.ocr.languages == ["eng", "nld"]
    assert config.ocr.preprocess is True
    assert config.language.target == "en"
    assert config.language.keywords == ["total", "totaal"]
    assert config.translate.backend == "edge"
    assert config.translate.url == ""
    assert config.backend.gateway == "sqlite"
    assert config.pipeline.recognize_timeout == 60.0
    assert config.pipeline.detect_timeout == 10.0
    assert config.export.path == "finance-data.xlsx"


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.ocr.backend == "tesseract"


def test_load_config_from_toml():
    """Loading a valid TOML file populates config."""
    config = _load_toml(b"""\
[user]
user_id = "user-1"

[ocr]
backend = "claude"
languages = ["eng"]
preprocess = false

[ocr.claude]
api_key = "ocr-key"
model = "claude-test"

[language]
target = "nl"
keywords = ["totaal"]

[translate]
backend = "claude"

[backend]
gateway = "supabase"
supabase_url = "https://example.supabase.co"
supabase_key = "anon-key"

[pipeline]
persist_timeout = 5.0
""")
    assert config.user.user_id == "user-1"
    assert config.ocr.backend == "claude"
    assert config.ocr.languages == ["eng"]
    assert config.ocr.preprocess is False
    assert config.ocr.claude.api_key == "ocr-key"
    assert config.ocr.claude.model == "claude-test"
    assert config.language.target == "nl"
    assert config.language.keywords == ["totaal"]
    assert config.translate.backend == "claude"
    assert config.backend.gateway == "supabase"
    assert config.pipeline.persist_timeout == 5.0
    assert config.pipeline.recognize_timeout == 60.0


def test_translate_url_defaults_to_edge_function():
    """Without an explicit url the translate function sits under the backend."""
    config = _load_toml(b"""\
[backend]
supabase_url = "https://example.supabase.co/"
supabase_key = "anon-key"
""")
    assert config.translate.url == "https://example.supabase.co/functions/v1/translate"
    assert config.translate.api_key == "anon-key"


def test_load_config_env_override(monkeypatch):
    """Environment variables fill in empty credentials."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic-key")
    monkeypatch.setenv("DETECTLANGUAGE_API_KEY", "env-detect-key")
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "env-supabase-key")
    monkeypatch.setenv("TALLYBOOK_USER_ID", "env-user")

    config = load_config()
    assert config.ocr.claude.api_key == "env-anthropic-key"
    assert config.translate.claude.api_key == "env-anthropic-key"
    assert config.language.api_key == "env-detect-key"
    assert config.backend.supabase_url == "https://env.supabase.co"
    assert config.backend.supabase_key == "env-supabase-key"
    assert config.user.user_id == "env-user"


def test_load_config_file_key_takes_precedence(monkeypatch):
    """Config file credentials take precedence over env vars."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    config = _load_toml(b"""\
[ocr.claude]
api_key = "file-key"
""")
    assert config.ocr.claude.api_key == "file-key"
    assert config.translate.claude.api_key == "env-key"
