"""TOML configuration loader for tallybook."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class UserConfig:
    user_id: str = ""
    access_token: str = ""


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class OCRConfig:
    backend: str = "tesseract"
    languages: list[str] = field(default_factory=lambda: ["eng", "nld"])
    preprocess: bool = True
    tesseract_cmd: str = ""
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)


@dataclass
class LanguageConfig:
    target: str = "en"
    detect_url: str = "https://ws.detectlanguage.com/0.2/detect"
    api_key: str = ""
    keywords: list[str] = field(default_factory=lambda: ["total", "totaal"])


@dataclass
class TranslateConfig:
    backend: str = "edge"
    url: str = ""
    api_key: str = ""
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)


@dataclass
class BackendConfig:
    gateway: str = "sqlite"
    db_path: str = "~/.config/tallybook/tallybook.db"
    supabase_url: str = ""
    supabase_key: str = ""


@dataclass
class PipelineConfig:
    recognize_timeout: float = 60.0
    detect_timeout: float = 10.0
    translate_timeout: float = 30.0
    persist_timeout: float = 15.0


@dataclass
class ExportConfig:
    path: str = "finance-data.xlsx"


@dataclass
class TallybookConfig:
    user: UserConfig = field(default_factory=UserConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    language: LanguageConfig = field(default_factory=LanguageConfig)
    translate: TranslateConfig = field(default_factory=TranslateConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    export: ExportConfig = field(default_factory=ExportConfig)


def load_config(path: str | Path | None = None) -> TallybookConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Credentials can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    usr = raw.get("user", {})
    ocr = raw.get("ocr", {})
    lng = raw.get("language", {})
    trn = raw.get("translate", {})
    bck = raw.get("backend", {})
    ppl = raw.get("pipeline", {})
    exp = raw.get("export", {})

    ocr_claude = ocr.get("claude", {})
    trn_claude = trn.get("claude", {})

    # Resolve credentials: config file → environment variable
    anthropic_key = os.environ.get("ANTHROPIC_API_KEY", "")
    supabase_url = bck.get("supabase_url", "") or os.environ.get("SUPABASE_URL", "")
    supabase_key = bck.get("supabase_key", "") or os.environ.get("SUPABASE_KEY", "")

    # The translate edge function lives next to the hosted backend by default
    translate_url = trn.get("url", "")
    if not translate_url and supabase_url:
        translate_url = supabase_url.rstrip("/") + "/functions/v1/translate"

    defaults = TallybookConfig()

    return TallybookConfig(
        user=UserConfig(
            user_id=usr.get("user_id", "") or os.environ.get("TALLYBOOK_USER_ID", ""),
            access_token=usr.get("access_token", ""),
        ),
        ocr=OCRConfig(
            backend=ocr.get("backend", "tesseract"),
            languages=ocr.get("languages", defaults.ocr.languages),
            preprocess=ocr.get("preprocess", True),
            tesseract_cmd=ocr.get("tesseract_cmd", ""),
            claude=ClaudeConfig(
                api_key=ocr_claude.get("api_key", "") or anthropic_key,
                model=ocr_claude.get("model", defaults.ocr.claude.model),
            ),
        ),
        language=LanguageConfig(
            target=lng.get("target", "en"),
            detect_url=lng.get("detect_url", defaults.language.detect_url),
            api_key=lng.get("api_key", "")
            or os.environ.get("DETECTLANGUAGE_API_KEY", ""),
            keywords=lng.get("keywords", defaults.language.keywords),
        ),
        translate=TranslateConfig(
            backend=trn.get("backend", "edge"),
            url=translate_url,
            api_key=trn.get("api_key", "") or supabase_key,
            claude=ClaudeConfig(
                api_key=trn_claude.get("api_key", "") or anthropic_key,
                model=trn_claude.get("model", defaults.translate.claude.model),
            ),
        ),
        backend=BackendConfig(
            gateway=bck.get("gateway", "sqlite"),
            db_path=bck.get("db_path", defaults.backend.db_path),
            supabase_url=supabase_url,
            supabase_key=supabase_key,
        ),
        pipeline=PipelineConfig(
            recognize_timeout=ppl.get("recognize_timeout", 60.0),
            detect_timeout=ppl.get("detect_timeout", 10.0),
            translate_timeout=ppl.get("translate_timeout", 30.0),
            persist_timeout=ppl.get("persist_timeout", 15.0),
        ),
        export=ExportConfig(
            path=exp.get("path", "finance-data.xlsx"),
        ),
    )
