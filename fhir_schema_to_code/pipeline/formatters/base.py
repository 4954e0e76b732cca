"""
Base class for code formatters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..config import FormatterConfig


class Formatter(ABC):
    """Abstract base class for formatters applied to emitted modules."""

    @abstractmethod
    def format(self, code: str, config: FormatterConfig) -> str:
        """
        Format one generated module.

        Args:
            code: Rendered module source
            config: Formatter configuration

        Returns:
            Formatted source, or ``code`` unchanged when formatting is not possible
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the formatter's executable can be used."""
