"""Claude API vision backend for receipt transcription."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path

from . import TextRecognizer

_PROMPT = """\
This image is a photo of a shop receipt.
Transcribe all text on the receipt exactly as printed, line by line,
in its original language. Keep amounts exactly as shown.
Return only the transcribed text, no commentary.
"""


class ClaudeRecognizer(TextRecognizer):
    """Transcribe receipts using Claude's vision capability."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        super().__init__()
        self._api_key = api_key
        self._model = model
        self._client = None

    async def _recognize(self, image_path: str) -> str:
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        data = Path(image_path).read_bytes()
        media_type = mimetypes.guess_type(image_path)[0] or "image/jpeg"
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.standard_b64encode(data).decode(),
                },
            },
            {"type": "text", "text": _PROMPT},
        ]

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=4096,
            messages=[{"role": "user", "content": content}],
        )
        return _strip_fences(response.content[0].text)

    async def terminate(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        await super().terminate()


def _strip_fences(text: str) -> str:
    """Remove markdown code fences if the model added them."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned
