"""Exception types raised by markup loading, serialization and import."""

from typing import List, Optional


class MarkupError(Exception):
    """Base exception for all markup handling errors."""


class MarkupLoadError(MarkupError):
    """Raised when markup declared or sniffed as XML cannot be parsed."""

    def __init__(
        self,
        message: str = "Error loading XML markup",
        parser_errors: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.parser_errors = parser_errors or []


class FragmentError(MarkupError):
    """Raised when a synthetic fragment document cannot be built or unwrapped."""

    def __init__(self, message: str = "Error loading documentFragment markup"):
        super().__init__(message)


class WrapperStateError(MarkupError):
    """Raised when an operation needs a loaded document but none is available."""
