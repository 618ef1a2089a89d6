from .config import ConfigError, EngineConfig, load_config
from .engine import ReportEngine
from .exceptions import (
    ApiError,
    AuthError,
    InvalidIdentifierError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    SourceError,
    TransportError,
    ValidationError,
)
from .http_client import AsyncHttpClient
from .models import (
    CategorySummary,
    DateRange,
    FinancialLine,
    FinancialSummary,
    LineItem,
    Outcome,
    OutcomeStatus,
    ProductSummary,
    ReportKind,
    ReportViewModel,
    SalesSummary,
    TransactionRecord,
    TrendPoint,
    TrendSeries,
)
from .period import (
    CategorySubject,
    FinancialPeriodSubject,
    MonthSubject,
    PeriodSubject,
    SalesPeriodSubject,
    decode_identifier,
    resolve_period,
)
from .sources import SourceChain
from .synthetic import SyntheticGenerator

__all__ = [
    "ApiError",
    "AsyncHttpClient",
    "AuthError",
    "CategorySubject",
    "CategorySummary",
    "ConfigError",
    "DateRange",
    "EngineConfig",
    "FinancialLine",
    "FinancialPeriodSubject",
    "FinancialSummary",
    "InvalidIdentifierError",
    "LineItem",
    "MonthSubject",
    "NotFoundError",
    "Outcome",
    "OutcomeStatus",
    "PeriodSubject",
    "PermissionError",
    "ProductSummary",
    "RateLimitError",
    "ReportEngine",
    "ReportKind",
    "ReportViewModel",
    "SalesPeriodSubject",
    "SalesSummary",
    "ServerError",
    "SourceChain",
    "SourceError",
    "SyntheticGenerator",
    "TransactionRecord",
    "TransportError",
    "TrendPoint",
    "TrendSeries",
    "ValidationError",
    "decode_identifier",
    "load_config",
    "resolve_period",
]
