"""Observability helpers for the slot coordinator."""

from .logging import configure_logging

__all__ = ["configure_logging"]
