"""Translator base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import TallybookConfig


class Translator(ABC):
    """Abstract base for translating receipt text into the target language."""

    @abstractmethod
    async def translate(self, text: str) -> str:
        """Return the translated text.

        Raises:
            TranslationFailed: On any error; the run cannot continue.
        """
        ...


def create_translator(config: TallybookConfig) -> Translator:
    """Create a translator based on configuration."""
    backend_name = config.translate.backend

    match backend_name:
        case "edge":
            from .edge import EdgeFunctionTranslator

            return EdgeFunctionTranslator(
                url=config.translate.url,
                api_key=config.translate.api_key,
                timeout=config.pipeline.translate_timeout,
            )
        case "claude":
            from .claude import ClaudeTranslator

            return ClaudeTranslator(
                api_key=config.translate.claude.api_key,
                model=config.translate.claude.model,
                target=config.language.target,
            )
        case _:
            raise ValueError(
                f"Unknown translate backend: {backend_name!r} "
                f"(choose from edge / claude)"
            )
