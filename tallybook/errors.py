"""Exception types shared across the receipt pipeline and storage layers."""

from __future__ import annotations


class TallybookError(Exception):
    """Base class for all tallybook errors."""


class PipelineError(TallybookError):
    """A failure that ends (or would end) an ingestion run."""

    reason = "PipelineError"


class RecognitionFailed(PipelineError):
    reason = "RecognitionFailed"


class DetectionUndetermined(PipelineError):
    """Language detection gave no usable answer.

    Never surfaced to the user; the identifier recovers by assuming the
    target language.
    """

    reason = "DetectionUndetermined"


class TranslationFailed(PipelineError):
    reason = "TranslationFailed"


class ExtractionFailed(PipelineError):
    reason = "ExtractionFailed"


class PersistenceFailed(PipelineError):
    reason = "PersistenceFailed"


class GatewayError(TallybookError):
    """A persistence gateway call failed (transport, HTTP or SQL)."""


class RowMappingError(TallybookError, ValueError):
    """A backend row is missing fields or holds values of the wrong shape."""


class NotAuthenticated(TallybookError):
    """A write was attempted without an authenticated user id."""
