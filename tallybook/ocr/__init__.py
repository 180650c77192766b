"""Text recognizer base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import TallybookConfig

ACCEPTED_EXTENSIONS: tuple[str, ...] = (".jpeg", ".jpg", ".png")


class TextRecognizer(ABC):
    """Abstract base for receipt OCR engines.

    A recognizer is a scoped resource: create one per run and call
    :meth:`terminate` on every exit path (or use it as an async context
    manager).
    """

    def __init__(self) -> None:
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def recognize(self, image_path: str) -> str:
        """Return the raw text recognized in the image."""
        if self._terminated:
            raise RuntimeError("Recognizer has already been terminated")
        return await self._recognize(image_path)

    @abstractmethod
    async def _recognize(self, image_path: str) -> str:
        ...

    async def terminate(self) -> None:
        """Release the underlying recognition worker. Safe to call twice."""
        self._terminated = True

    async def __aenter__(self) -> TextRecognizer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.terminate()


def create_recognizer(config: TallybookConfig) -> TextRecognizer:
    """Create a text recognizer based on configuration."""
    backend_name = config.ocr.backend

    match backend_name:
        case "tesseract":
            from .tesseract import TesseractRecognizer

            return TesseractRecognizer(
                languages=config.ocr.languages,
                preprocess=config.ocr.preprocess,
                tesseract_cmd=config.ocr.tesseract_cmd,
            )
        case "claude":
            from .claude import ClaudeRecognizer

            return ClaudeRecognizer(
                api_key=config.ocr.claude.api_key,
                model=config.ocr.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown OCR backend: {backend_name!r} "
                f"(choose from tesseract / claude)"
            )
