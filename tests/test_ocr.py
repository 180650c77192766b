"""Tests for text recognizer backends (mocked engines)."""

import sys
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest
from PIL import Image

from tallybook.config import load_config
from tallybook.ocr import TextRecognizer, create_recognizer
from tallybook.ocr.claude import ClaudeRecognizer, _strip_fences
from tallybook.ocr.tesseract import TesseractRecognizer


@pytest.fixture
def receipt_png(tmp_path):
    path = tmp_path / "receipt.png"
    Image.new("RGB", (40, 20), "white").save(path)
    return path


@pytest.fixture
def mock_pytesseract():
    """Inject a mock pytesseract module into sys.modules."""
    mock = MagicMock()
    mock.image_to_string.return_value = "Total 12.34\n"
    with patch.dict(sys.modules, {"pytesseract": mock}):
        yield mock


class TestCreateRecognizer:
    def test_create_tesseract_recognizer(self):
        config = load_config()
        recognizer = create_recognizer(config)
        assert isinstance(recognizer, TesseractRecognizer)
        assert isinstance(recognizer, TextRecognizer)

    def test_create_claude_recognizer(self):
        config = load_config()
        config.ocr.backend = "claude"
        assert isinstance(create_recognizer(config), ClaudeRecognizer)

    def test_create_unknown_recognizer(self):
        config = load_config()
        config.ocr.backend = "unknown"
        with pytest.raises(ValueError, match="Unknown OCR backend"):
            create_recognizer(config)


class TestTesseractRecognizer:
    @pytest.mark.asyncio
    async def test_recognize_uses_language_hints(self, receipt_png, mock_pytesseract):
        recognizer = TesseractRecognizer(languages=["eng", "nld"], preprocess=False)
        text = await recognizer.recognize(str(receipt_png))

        assert text == "Total 12.34\n"
        _, kwargs = mock_pytesseract.image_to_string.call_args
        assert kwargs["lang"] == "eng+nld"

    @pytest.mark.asyncio
    async def test_custom_tesseract_cmd(self, receipt_png, mock_pytesseract):
        recognizer = TesseractRecognizer(preprocess=False, tesseract_cmd="/opt/tesseract")
        await recognizer.recognize(str(receipt_png))
        assert mock_pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract"

    @pytest.mark.asyncio
    async def test_missing_image(self, tmp_path, mock_pytesseract):
        recognizer = TesseractRecognizer(preprocess=False)
        with pytest.raises(FileNotFoundError):
            await recognizer.recognize(str(tmp_path / "missing.png"))

    @pytest.mark.asyncio
    async def test_preprocess_with_opencv(self, receipt_png, mock_pytesseract):
        gray = np.zeros((20, 40), dtype=np.uint8)
        mock_cv2 = MagicMock()
        mock_cv2.cvtColor.return_value = gray
        mock_cv2.threshold.return_value = (0, gray)
        mock_cv2.medianBlur.return_value = gray

        with patch.dict(sys.modules, {"cv2": mock_cv2}):
            recognizer = TesseractRecognizer(preprocess=True)
            await recognizer.recognize(str(receipt_png))

        mock_cv2.threshold.assert_called_once()
        image = mock_pytesseract.image_to_string.call_args.args[0]
        assert image.mode == "L"

    @pytest.mark.asyncio
    async def test_image_work_runs_off_the_event_loop(self, receipt_png, mock_pytesseract):
        gray = np.zeros((20, 40), dtype=np.uint8)
        threads = []

        def cvt_color(arr, code):
            threads.append(threading.current_thread())
            return gray

        mock_cv2 = MagicMock()
        mock_cv2.cvtColor.side_effect = cvt_color
        mock_cv2.threshold.return_value = (0, gray)
        mock_cv2.medianBlur.return_value = gray

        with patch.dict(sys.modules, {"cv2": mock_cv2}):
            await TesseractRecognizer(preprocess=True).recognize(str(receipt_png))

        assert threads and threads[0] is not threading.main_thread()

    @pytest.mark.asyncio
    async def test_terminate_closes_images(self, receipt_png, mock_pytesseract):
        recognizer = TesseractRecognizer(preprocess=False)
        await recognizer.recognize(str(receipt_png))
        assert len(recognizer._images) == 1

        await recognizer.terminate()
        assert recognizer._images == []
        assert recognizer.terminated is True

    @pytest.mark.asyncio
    async def test_recognize_after_terminate_fails(self, receipt_png, mock_pytesseract):
        async with TesseractRecognizer(preprocess=False) as recognizer:
            pass
        assert recognizer.terminated is True
        with pytest.raises(RuntimeError, match="terminated"):
            await recognizer.recognize(str(receipt_png))


class TestClaudeRecognizer:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        recognizer = ClaudeRecognizer(api_key="")
        with pytest.raises(ValueError, match="API key"):
            await recognizer.recognize("/tmp/test.jpg")

    @pytest.mark.asyncio
    async def test_recognize_mocked(self, tmp_path):
        img = tmp_path / "test.jpg"
        img.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")

        mock_response = MagicMock()
        mock_response.content = [MagicMock(text="```\nTotaal 6.59\n```")]

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        mock_anthropic = MagicMock()
        mock_anthropic.AsyncAnthropic.return_value = mock_client

        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            recognizer = ClaudeRecognizer(api_key="test-key")
            text = await recognizer.recognize(str(img))
            await recognizer.terminate()

        assert text == "Totaal 6.59"
        content = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["source"]["media_type"] == "image/jpeg"
        mock_client.close.assert_awaited_once()


class TestStripFences:
    def test_plain_text_untouched(self):
        assert _strip_fences("Total 1.00\n") == "Total 1.00"

    def test_fenced_text(self):
        assert _strip_fences("```text\nA\nB\n```") == "A\nB"
