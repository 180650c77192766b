"""Personal finance tracking: receipt ingestion, budgets and shopping lists."""

from .auth import Session, resolve_session
from .config import (
    BackendConfig,
    LanguageConfig,
    OCRConfig,
    PipelineConfig,
    TallybookConfig,
    TranslateConfig,
    load_config,
)
from .errors import (
    DetectionUndetermined,
    ExtractionFailed,
    GatewayError,
    NotAuthenticated,
    PersistenceFailed,
    PipelineError,
    RecognitionFailed,
    RowMappingError,
    TranslationFailed,
)
from .extract import extract_total
from .insights import BudgetUsage, budget_usage, monthly_spending, spending_by_category
from .language import LanguageIdentifier
from .models import (
    CATEGORIES,
    Budget,
    Receipt,
    ReceiptItem,
    ShoppingItem,
    ShoppingList,
)
from .pipeline import IngestionPipeline, RunResult, Stage
from .store import AppState

__all__ = [
    "AppState",
    "IngestionPipeline",
    "RunResult",
    "Stage",
    "LanguageIdentifier",
    "extract_total",
    "spending_by_category",
    "monthly_spending",
    "budget_usage",
    "BudgetUsage",
    "Session",
    "resolve_session",
    "Receipt",
    "ReceiptItem",
    "Budget",
    "ShoppingList",
    "ShoppingItem",
    "CATEGORIES",
    "TallybookConfig",
    "OCRConfig",
    "LanguageConfig",
    "TranslateConfig",
    "BackendConfig",
    "PipelineConfig",
    "load_config",
    "PipelineError",
    "RecognitionFailed",
    "DetectionUndetermined",
    "TranslationFailed",
    "ExtractionFailed",
    "PersistenceFailed",
    "GatewayError",
    "RowMappingError",
    "NotAuthenticated",
]
