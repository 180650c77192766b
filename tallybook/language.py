"""Language identification through a hosted detection service."""

from __future__ import annotations

import asyncio
import logging

import requests

from .errors import DetectionUndetermined

logger = logging.getLogger(__name__)


class LanguageIdentifier:
    """Return a best-guess two-letter language code for a block of text.

    Detection is an optimization: every failure (transport, HTTP status,
    malformed or empty response) falls back to the target language so the
    pipeline simply skips translation.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        target: str = "en",
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._target = target
        self._timeout = timeout

    @property
    def target(self) -> str:
        return self._target

    async def identify(self, text: str) -> str:
        if not text.strip() or not self._url:
            return self._target
        try:
            return await asyncio.to_thread(self._detect, text)
        except DetectionUndetermined as e:
            logger.warning("Language detection undetermined, assuming %r: %s", self._target, e)
            return self._target

    def _detect(self, text: str) -> str:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            response = requests.post(
                self._url,
                json={"q": text},
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise DetectionUndetermined(f"detection request failed: {e}") from e
        except ValueError as e:
            raise DetectionUndetermined(f"detection response is not JSON: {e}") from e
        return parse_detections(payload)


def parse_detections(payload) -> str:
    """Pick the top-ranked language code from a detection response.

    Accepts ``{"data": {"detections": [...]}}`` or a bare list of
    ``{"language": "nl", ...}`` entries, best first.

    Raises:
        DetectionUndetermined: If no usable code is present.
    """
    detections = payload
    if isinstance(payload, dict):
        data = payload.get("data")
        detections = data.get("detections") if isinstance(data, dict) else None
    if not isinstance(detections, list) or not detections:
        raise DetectionUndetermined("no detections in response")

    top = detections[0]
    code = top.get("language") if isinstance(top, dict) else None
    if not isinstance(code, str) or len(code) < 2 or not code[:2].isalpha():
        raise DetectionUndetermined(f"invalid language code: {code!r}")
    # "zh-Hant" → "zh"
    return code[:2].lower()
