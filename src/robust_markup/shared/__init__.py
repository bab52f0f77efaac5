"""Shared configuration, logging and error types."""

from .config import (
    ConfigError,
    ConfigValidationError,
    DocumentConfig,
)
from .errors import (
    FragmentError,
    MarkupError,
    MarkupLoadError,
    WrapperStateError,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "DocumentConfig",
    "FragmentError",
    "MarkupError",
    "MarkupLoadError",
    "WrapperStateError",
    "CorrelationLogger",
    "get_logger",
]
