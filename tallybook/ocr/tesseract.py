"""On-device OCR using Tesseract."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from . import TextRecognizer

logger = logging.getLogger(__name__)


class TesseractRecognizer(TextRecognizer):
    """Recognize receipt text with pytesseract.

    Images opened for a run are kept until :meth:`terminate` closes them.
    """

    def __init__(
        self,
        languages: list[str] | None = None,
        preprocess: bool = True,
        tesseract_cmd: str = "",
    ) -> None:
        super().__init__()
        self._languages = languages or ["eng"]
        self._preprocess = preprocess
        self._tesseract_cmd = tesseract_cmd
        self._images: list = []

    async def _recognize(self, image_path: str) -> str:
        try:
            import pytesseract
            from PIL import Image
        except ImportError:
            raise ImportError(
                "pytesseract and Pillow are required: pip install pytesseract Pillow"
            ) from None

        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

        path = Path(image_path)
        if not path.exists():
            raise FileNotFoundError(f"Image not found: {path}")

        lang = "+".join(self._languages)
        logger.debug("Running tesseract (lang=%s) on %s", lang, path)
        return await asyncio.to_thread(self._read, pytesseract, Image, path, lang)

    def _read(self, pytesseract, image_module, path: Path, lang: str) -> str:
        # Runs in a worker thread
        image = image_module.open(path)
        self._images.append(image)
        if self._preprocess:
            image = _preprocess_image(image)
            self._images.append(image)
        return pytesseract.image_to_string(image, lang=lang)

    async def terminate(self) -> None:
        for image in self._images:
            image.close()
        self._images.clear()
        await super().terminate()


def _preprocess_image(image):
    """Grayscale, Otsu threshold and denoise to help Tesseract."""
    try:
        import cv2
        import numpy as np
    except ImportError:
        raise ImportError(
            "opencv-python is required for preprocessing: pip install opencv-python "
            "(or set ocr.preprocess = false)"
        ) from None

    from PIL import Image

    arr = np.array(image.convert("RGB"))
    gray = cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)
    _, thresh = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    denoised = cv2.medianBlur(thresh, 3)
    return Image.fromarray(denoised)
