"""Receipt ingestion: image → OCR → language → translation → total → record."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from .errors import (
    DetectionUndetermined,
    ExtractionFailed,
    PersistenceFailed,
    PipelineError,
    RecognitionFailed,
    TranslationFailed,
)
from .extract import DEFAULT_KEYWORDS, extract_total
from .models import Receipt, new_id, utcnow
from .notify import LoggingNotifier, Notifier
from .ocr import ACCEPTED_EXTENSIONS, TextRecognizer

if TYPE_CHECKING:
    from .config import PipelineConfig, TallybookConfig
    from .language import LanguageIdentifier
    from .store import AppState
    from .translate import Translator

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUCCESS_MESSAGE = "Receipt processed successfully!"

_FAILURE_MESSAGES: dict[str, str] = {
    RecognitionFailed.reason: "Error reading receipt image. Please try again.",
    TranslationFailed.reason: "Could not translate receipt. Please try again.",
    ExtractionFailed.reason: "Could not process receipt. Please try again.",
    PersistenceFailed.reason: "Could not save receipt. Please try again.",
}


class Stage(Enum):
    IDLE = "idle"
    RECOGNIZING = "recognizing"
    DETECTING_LANGUAGE = "detecting_language"
    TRANSLATING = "translating"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of one run: either a stored receipt or a failure reason."""

    ok: bool
    image_path: str
    message: str
    receipt: Receipt | None = None
    reason: str | None = None
    failed_stage: Stage | None = None
    text: str = ""
    language: str = ""
    stages: list[Stage] = field(default_factory=list)


class PipelineRun:
    """Per-run state; never shared between runs."""

    def __init__(self, image_path: str) -> None:
        self.image_path = image_path
        self.stage = Stage.IDLE
        self.stages: list[Stage] = [Stage.IDLE]
        self.text = ""
        self.language = ""

    def advance(self, stage: Stage) -> None:
        logger.debug("%s: %s → %s", self.image_path, self.stage.value, stage.value)
        self.stage = stage
        self.stages.append(stage)


def select_image(paths: Sequence[str | Path]) -> str | None:
    """Return the first accepted image of a batch; the rest are ignored."""
    for path in paths:
        if Path(path).suffix.lower() in ACCEPTED_EXTENSIONS:
            return str(path)
    return None


class IngestionPipeline:
    """Turn a receipt image into one persisted receipt.

    Every run ends in exactly one notification. Detection problems are
    recovered by assuming the target language; any other stage failure ends
    the run with that stage's reason and leaves the state untouched.
    """

    def __init__(
        self,
        state: AppState,
        recognizer_factory: Callable[[], TextRecognizer],
        identifier: LanguageIdentifier,
        translator: Translator,
        notifier: Notifier | None = None,
        keywords: Sequence[str] = DEFAULT_KEYWORDS,
        timeouts: PipelineConfig | None = None,
    ) -> None:
        from .config import PipelineConfig

        self._state = state
        self._recognizer_factory = recognizer_factory
        self._identifier = identifier
        self._translator = translator
        self._notifier = notifier or LoggingNotifier()
        self._keywords = tuple(keywords)
        self._timeouts = timeouts or PipelineConfig()

    @classmethod
    def from_config(
        cls,
        config: TallybookConfig,
        state: AppState,
        notifier: Notifier | None = None,
    ) -> IngestionPipeline:
        from .language import LanguageIdentifier
        from .ocr import create_recognizer
        from .translate import create_translator

        return cls(
            state=state,
            recognizer_factory=lambda: create_recognizer(config),
            identifier=LanguageIdentifier(
                url=config.language.detect_url,
                api_key=config.language.api_key,
                target=config.language.target,
                timeout=config.pipeline.detect_timeout,
            ),
            translator=create_translator(config),
            notifier=notifier,
            keywords=config.language.keywords,
            timeouts=config.pipeline,
        )

    async def ingest(self, paths: Sequence[str | Path]) -> RunResult | None:
        """Process the first accepted image of a drop/selection batch.

        Returns None (and starts no run) if the batch holds no accepted image.
        """
        image_path = select_image(paths)
        if image_path is None:
            logger.info("No accepted image in batch of %d file(s)", len(paths))
            return None
        if len(paths) > 1:
            logger.info("Processing %s, ignoring %d other file(s)", image_path, len(paths) - 1)
        return await self.run(image_path)

    async def run(self, image_path: str | Path) -> RunResult:
        run = PipelineRun(str(image_path))
        recognizer: TextRecognizer | None = None
        try:
            run.advance(Stage.RECOGNIZING)
            try:
                recognizer = self._recognizer_factory()
            except Exception as e:
                raise RecognitionFailed(f"could not start recognizer: {e}") from e
            run.text = await self._stage(
                recognizer.recognize(run.image_path),
                self._timeouts.recognize_timeout,
                RecognitionFailed,
            )

            run.advance(Stage.DETECTING_LANGUAGE)
            run.language = await self._detect_language(run.text)

            if run.language != self._identifier.target:
                run.advance(Stage.TRANSLATING)
                run.text = await self._stage(
                    self._translator.translate(run.text),
                    self._timeouts.translate_timeout,
                    TranslationFailed,
                )

            run.advance(Stage.EXTRACTING)
            total = extract_total(run.text, self._keywords)

            run.advance(Stage.PERSISTING)
            now = utcnow()
            receipt = Receipt(
                id=new_id(),
                date=now,
                total=total,
                items=[],
                category="other",
                image_url=run.image_path,
                created_at=now,
                updated_at=now,
            )
            stored = await self._persist(receipt)
        except PipelineError as e:
            return self._fail(run, e)
        finally:
            if recognizer is not None:
                await self._release(recognizer)

        run.advance(Stage.SUCCEEDED)
        self._notifier.success(SUCCESS_MESSAGE)
        return RunResult(
            ok=True,
            image_path=run.image_path,
            message=SUCCESS_MESSAGE,
            receipt=stored,
            text=run.text,
            language=run.language,
            stages=run.stages,
        )

    async def _detect_language(self, text: str) -> str:
        try:
            return await asyncio.wait_for(
                self._identifier.identify(text), self._timeouts.detect_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Language detection timed out, assuming %r", self._identifier.target
            )
            return self._identifier.target
        except Exception as e:
            logger.warning(
                "%s: %s, assuming %r",
                DetectionUndetermined.reason, e, self._identifier.target,
            )
            return self._identifier.target

    @staticmethod
    async def _stage(
        awaitable: Awaitable[T], timeout: float, failure: type[PipelineError]
    ) -> T:
        """Await one external call, mapping timeouts and errors to ``failure``."""
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except failure:
            raise
        except asyncio.TimeoutError as e:
            raise failure(f"timed out after {timeout:g}s") from e
        except Exception as e:
            logger.exception("Unexpected error (%s)", failure.reason)
            raise failure(str(e) or type(e).__name__) from e

    async def _persist(self, receipt: Receipt) -> Receipt:
        """Save the receipt; a write that outlives the timeout is undone."""
        timeout = self._timeouts.persist_timeout
        write = asyncio.ensure_future(self._state.add_receipt(receipt))
        try:
            return await asyncio.wait_for(asyncio.shield(write), timeout)
        except asyncio.TimeoutError as e:
            # The gateway call runs in a worker thread and cannot be cancelled
            await self._discard(write, receipt.id)
            raise PersistenceFailed(f"timed out after {timeout:g}s") from e
        except Exception as e:
            logger.exception("Unexpected error (%s)", PersistenceFailed.reason)
            raise PersistenceFailed(str(e) or type(e).__name__) from e

    async def _discard(self, write: asyncio.Future, receipt_id: str) -> None:
        try:
            await write
        except Exception as e:
            logger.info("Late write of receipt %s failed, nothing to undo: %s", receipt_id, e)
            return
        try:
            await self._state.delete_receipt(receipt_id)
        except Exception:
            logger.exception("Failed to undo late write of receipt %s", receipt_id)
        else:
            logger.warning("Undid write of receipt %s that finished after the timeout", receipt_id)

    def _fail(self, run: PipelineRun, error: PipelineError) -> RunResult:
        failed_stage = run.stage
        run.advance(Stage.FAILED)
        message = _FAILURE_MESSAGES.get(error.reason, "Error processing receipt. Please try again.")
        logger.warning(
            "Run for %s failed at %s: %s (%s)",
            run.image_path, failed_stage.value, error.reason, error,
        )
        self._notifier.error(message)
        return RunResult(
            ok=False,
            image_path=run.image_path,
            message=message,
            reason=error.reason,
            failed_stage=failed_stage,
            text=run.text,
            language=run.language,
            stages=run.stages,
        )

    @staticmethod
    async def _release(recognizer: TextRecognizer) -> None:
        try:
            await recognizer.terminate()
        except Exception:
            logger.exception("Failed to terminate recognizer")
