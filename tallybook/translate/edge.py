"""Translation through the hosted ``translate`` edge function."""

from __future__ import annotations

import asyncio

import requests

from ..errors import TranslationFailed
from . import Translator


class EdgeFunctionTranslator(Translator):
    """POST ``{"text": ...}`` and read ``translatedText`` from the reply."""

    def __init__(self, url: str = "", api_key: str = "", timeout: float = 30.0) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout

    async def translate(self, text: str) -> str:
        if not self._url:
            raise TranslationFailed("Translation endpoint is not configured")
        if not self._api_key:
            raise TranslationFailed(
                "Translation credential is not set. "
                "Check translate.api_key or the SUPABASE_KEY environment variable."
            )
        return await asyncio.to_thread(self._post, text)

    def _post(self, text: str) -> str:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "apikey": self._api_key,
            "Accept": "application/json",
        }
        try:
            response = requests.post(
                self._url,
                json={"text": text},
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise TranslationFailed(f"Translation request failed: {e}") from e
        except ValueError as e:
            raise TranslationFailed(f"Translation response is not JSON: {e}") from e

        translated = payload.get("translatedText") if isinstance(payload, dict) else None
        if not isinstance(translated, str) or not translated.strip():
            raise TranslationFailed("Translation response has no translatedText")
        return translated
