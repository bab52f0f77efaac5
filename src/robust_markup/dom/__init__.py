"""Document layer for loading and serializing markup on lxml trees.

Key Components:
    DocumentWrapper: Owns one tree; loads markup, serializes and imports nodes
    Dialect: HTML/XML/XHTML and fragment flags decided by the classifier
    classify: Content-type classification of markup
    expand_empty_tag: XHTML fixup for elements that must not self-close
"""

from .content_type import (
    Dialect,
    classify,
    is_document_fragment_html,
    is_document_fragment_xhtml,
    is_document_fragment_xml,
)
from .fixup import expand_empty_tag, markup_fix_xhtml
from .nodes import child_nodes
from .wrapper import DocumentWrapper, LoadState

__all__ = [
    "Dialect",
    "DocumentWrapper",
    "LoadState",
    "child_nodes",
    "classify",
    "expand_empty_tag",
    "is_document_fragment_html",
    "is_document_fragment_xhtml",
    "is_document_fragment_xml",
    "markup_fix_xhtml",
]
