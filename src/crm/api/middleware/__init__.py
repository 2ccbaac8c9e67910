"""API middleware package."""

from src.crm.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
