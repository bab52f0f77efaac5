"""Synthetic documents for parsing and serializing markup fragments.

The tree engine only parses and serializes complete documents. A fragment is
therefore wrapped in a minimal synthetic document before parsing, and its
markup is recovered afterwards by serializing the whole synthetic document and
cutting the synthetic wrapper back out of the text. The engine reformats the
structure around the fragment, so the boundaries are found syntactically, by
searching for the known wrapper tags.
"""

import re
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

from lxml import etree

from robust_markup.shared.errors import FragmentError

if TYPE_CHECKING:
    from .wrapper import DocumentWrapper

XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"
XHTML_DOCTYPE = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" '
    '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">'
)

# Synthetic XML wrapper and the exact text the engine serializes it as
FAKE_OPEN = "<fake>"
FAKE_OPEN_XHTML = f'<fake xmlns="{XHTML_NAMESPACE}">'
FAKE_CLOSE = "</fake>"
_FAKE_EMPTY = re.compile(r"<fake(?:\s[^>]*)?/>")

# Synthetic HTML wrapper
BODY_OPEN = "<body"
BODY_CLOSE = "</body>"


@contextmanager
def suspended_fragment_flag(wrapper: "DocumentWrapper") -> Iterator[None]:
    """Treat ``wrapper`` as a full document for the duration of the block.

    The previous fragment decision is restored on every exit path.
    """
    dialect = wrapper.dialect
    previous = dialect.is_document_fragment
    dialect.is_document_fragment = False
    try:
        yield
    finally:
        dialect.is_document_fragment = previous


def xml_fragment_document(charset: str, markup: str = "", xhtml: bool = False) -> str:
    """Wrap ``markup`` in a synthetic XML (or XHTML) document."""
    declaration = f'<?xml version="1.0" encoding="{charset}"?>'
    if xhtml:
        return f"{declaration}{XHTML_DOCTYPE}{FAKE_OPEN_XHTML}{markup}{FAKE_CLOSE}"
    return f"{declaration}{FAKE_OPEN}{markup}{FAKE_CLOSE}"


def html_fragment_document(charset: str, doctype: str, markup: str = "") -> str:
    """Wrap ``markup`` in a synthetic HTML document, adding a body if missing."""
    head = (
        '<html lang=""><head><title></title>'
        f'<meta http-equiv="Content-Type" content="text/html;charset={charset}">'
        "</head>"
    )
    if BODY_OPEN in markup.lower():
        return f"{doctype}{head}{markup}</html>"
    return f"{doctype}{head}<body>{markup}</body></html>"


def locate_xml_root(tree: Optional[etree._ElementTree]) -> Optional[etree._Element]:
    """Return the synthetic ``<fake>`` element, skipping any doctype."""
    if tree is None:
        return None
    return tree.getroot()


def locate_html_root(tree: Optional[etree._ElementTree]) -> Optional[etree._Element]:
    """Return the ``<body>`` element of a synthetic HTML document."""
    if tree is None or tree.getroot() is None:
        return None
    return tree.getroot().find("body")


def document_fragment_load_markup(
    fragment: "DocumentWrapper",
    charset: str,
    markup: Optional[str] = None
) -> bool:
    """Load ``markup`` into ``fragment`` through a synthetic document.

    Without markup, an empty synthetic document is loaded so that nodes can be
    imported into its root later on.

    Returns:
        True if the synthetic root was located, False otherwise
    """
    markup = markup or ""
    logger = fragment.logger.for_component("fragment")
    with suspended_fragment_flag(fragment):
        if fragment.is_xml:
            xhtml = fragment.is_xhtml
            fragment.load_markup_xml(xml_fragment_document(charset, markup, xhtml))
            fragment.root = locate_xml_root(fragment.document)
        else:
            source = html_fragment_document(
                charset, fragment.config.default_doctype, markup
            )
            loaded = fragment.load_markup_html(source)
            fragment.root = locate_html_root(fragment.document) if loaded else None

    if fragment.root is None:
        logger.warning(
            "Synthetic fragment root not found",
            extra={"charset": charset, "markup_length": len(markup)},
        )
        return False

    fragment.dialect.is_document_fragment = True
    logger.debug(
        "Loaded fragment through synthetic document",
        extra={"charset": charset, "is_xml": fragment.is_xml},
    )
    return True


def strip_xml_wrapper(markup: str, xhtml: bool = False) -> str:
    """Cut the synthetic ``<fake>`` element out of a serialized XML document."""
    opening = FAKE_OPEN_XHTML if xhtml else FAKE_OPEN
    start = markup.find(opening)
    end = markup.rfind(FAKE_CLOSE)
    if start == -1 or end == -1 or end < start:
        if _FAKE_EMPTY.search(markup):
            return ""
        raise FragmentError("Synthetic fragment boundaries not found in XML markup")
    return markup[start + len(opening):end]


def strip_html_wrapper(markup: str) -> str:
    """Cut everything up to the body start tag and from the body end tag on."""
    start = markup.find(BODY_OPEN)
    if start != -1:
        start = markup.find(">", start)
    end = markup.rfind(BODY_CLOSE)
    if start == -1 or end == -1 or end <= start:
        raise FragmentError("Synthetic fragment boundaries not found in HTML markup")
    return markup[start + 1:end]


def document_fragment_to_markup(fragment: "DocumentWrapper") -> str:
    """Serialize a fragment wrapper without its synthetic document."""
    with suspended_fragment_flag(fragment):
        markup = fragment.markup()
    if fragment.is_xml:
        return strip_xml_wrapper(markup, fragment.is_xhtml)
    return strip_html_wrapper(markup)
