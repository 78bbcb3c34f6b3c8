# src/dontdrop/middleware/__init__.py

"""Middleware components for the Don't Drop API."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
