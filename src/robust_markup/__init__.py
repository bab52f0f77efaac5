"""Robust Markup.

Loads arbitrary, possibly malformed HTML, XML and XHTML markup, full documents
or bare fragments, into lxml trees while reconciling conflicting charset
declarations, and serializes selected nodes back into markup of the same
dialect.
"""

__version__ = "0.1.0"
__author__ = "Robust Markup Team"

from .dom import DocumentWrapper, LoadState
from .shared.config import DocumentConfig
from .shared.errors import (
    FragmentError,
    MarkupError,
    MarkupLoadError,
    WrapperStateError,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Document loading and serialization
    "DocumentWrapper",
    "LoadState",

    # Configuration
    "DocumentConfig",

    # Errors
    "MarkupError",
    "MarkupLoadError",
    "FragmentError",
    "WrapperStateError",
]
