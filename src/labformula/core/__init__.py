"""Core configuration and utilities for LabFormula."""

from labformula.core.config import settings
from labformula.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
