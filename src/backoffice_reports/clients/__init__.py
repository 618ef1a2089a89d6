from .base import BaseClient
from .reports_client import ReportEnvelope, ReportsClient

__all__ = ["BaseClient", "ReportEnvelope", "ReportsClient"]
