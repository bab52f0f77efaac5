"""Content-type classification: HTML, XML or XHTML, full document or fragment."""

from dataclasses import dataclass
from typing import Optional

from robust_markup.character.charset import content_type_to_array

HTML_CONTENT_TYPE = "text/html"
XML_CONTENT_TYPE = "text/xml"
XHTML_CONTENT_TYPE = "application/xhtml+xml"

XML_DECLARATION_START = "<?xml"
XHTML_DOCTYPE_START = "<!DOCTYPE html"

# Number of leading characters searched for an XML declaration
DEFAULT_SNIFF_LENGTH = 100


@dataclass
class Dialect:
    """Dialect flags of a loaded document.

    ``is_html`` and ``is_xml`` are exclusive, ``is_xhtml`` implies ``is_xml``.
    ``is_document_fragment`` stays ``None`` until it has been decided.
    """

    is_html: bool = False
    is_xml: bool = False
    is_xhtml: bool = False
    is_document_fragment: Optional[bool] = None

    def reset(self) -> None:
        """Clear the dialect, keeping the fragment decision."""
        self.is_html = self.is_xml = self.is_xhtml = False

    @property
    def default_content_type(self) -> str:
        """Content type implied by the dialect."""
        if self.is_xhtml:
            return XHTML_CONTENT_TYPE
        if self.is_xml:
            return XML_CONTENT_TYPE
        return HTML_CONTENT_TYPE


def is_xml_markup(markup: str, sniff_length: int = DEFAULT_SNIFF_LENGTH) -> bool:
    """Check for an XML declaration near the start of ``markup``."""
    return XML_DECLARATION_START in markup[:sniff_length]


def is_xhtml_markup(markup: str) -> bool:
    """Check ``markup`` for an XHTML-flavored doctype declaration."""
    return XHTML_DOCTYPE_START in markup


def is_xhtml_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type) and "xhtml" in content_type


def is_document_fragment_html(markup: str) -> bool:
    """Markup without ``<html`` and without a doctype is a fragment.

    Example:
        >>> is_document_fragment_html("<p>hi</p>")
        True
        >>> is_document_fragment_html("<html><body></body></html>")
        False
    """
    lowered = markup.lower()
    return "<html" not in lowered and "<!doctype" not in lowered


def is_document_fragment_xhtml(markup: str) -> bool:
    return is_document_fragment_html(markup)


def is_document_fragment_xml(markup: str) -> bool:
    """XML markup without an XML declaration is a fragment."""
    return XML_DECLARATION_START not in markup.lower()


def select_loader(content_type: Optional[str]) -> Optional[str]:
    """Map an explicit content type to ``"html"``, ``"xml"`` or None.

    None means the content type says nothing usable and the markup has to be
    sniffed. Feeds and other ``*xml*`` types load as XML.
    """
    if not content_type:
        return None
    media_type, _ = content_type_to_array(content_type)
    if media_type == HTML_CONTENT_TYPE:
        return "html"
    if media_type in (XML_CONTENT_TYPE, XHTML_CONTENT_TYPE) or "xml" in media_type:
        return "xml"
    return None


def classify(
    markup: str,
    content_type: Optional[str] = None,
    sniff_length: int = DEFAULT_SNIFF_LENGTH
) -> Dialect:
    """Decide dialect and fragment-ness of ``markup``.

    Args:
        markup: Markup text
        content_type: Optional explicit content type, ``type[;charset=value]``
        sniff_length: Characters searched for an XML declaration

    Returns:
        Dialect with every flag decided
    """
    content_type = (content_type or "").lower()
    loader = select_loader(content_type)
    if loader is None:
        loader = "xml" if is_xml_markup(markup, sniff_length) else "html"

    if loader == "html":
        return Dialect(
            is_html=True,
            is_document_fragment=is_document_fragment_html(markup),
        )

    is_xhtml = is_xhtml_content_type(content_type) or is_xhtml_markup(markup)
    if is_xhtml:
        fragment = is_document_fragment_xhtml(markup)
    else:
        fragment = is_document_fragment_xml(markup)
    return Dialect(
        is_xml=True, is_xhtml=is_xhtml, is_document_fragment=fragment
    )
