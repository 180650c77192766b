"""Claude API translation backend."""

from __future__ import annotations

from ..errors import TranslationFailed
from . import Translator

_PROMPT = """\
Translate the following receipt text into the language with ISO 639-1 code
"{target}". Keep the line structure and keep every number exactly as written.
Return only the translated text.

{text}
"""


class ClaudeTranslator(Translator):
    """Translate receipt text using Claude."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        target: str = "en",
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._target = target

    async def translate(self, text: str) -> str:
        if not self._api_key:
            raise TranslationFailed(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=4096,
                messages=[
                    {
                        "role": "user",
                        "content": _PROMPT.format(target=self._target, text=text),
                    }
                ],
            )
        except anthropic.AnthropicError as e:
            raise TranslationFailed(f"Claude translation failed: {e}") from e
        finally:
            await client.close()

        translated = response.content[0].text.strip()
        if not translated:
            raise TranslationFailed("Claude returned an empty translation")
        return translated
