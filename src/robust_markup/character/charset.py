"""Charset resolution for HTML and XML markup.

Extracts the charset declared inside markup (HTML ``Content-Type`` meta tags and
XML declarations), reconciles it with the charset requested by the caller, and
rewrites the markup so that the declaration matches the charset the tree will be
built with.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from robust_markup.shared.config import DocumentConfig
from robust_markup.shared.logging import CorrelationLogger, get_logger

from .encoding import (
    AUTO,
    CharsetDetector,
    EncodingResult,
    decode_markup,
    normalize_charset,
    same_charset,
)

# HTTP/1.1 default for text/* bodies without a charset parameter
HTTP_DEFAULT_CHARSET = "ISO-8859-1"

# View of undecoded bytes used for sniffing declarations
SNIFF_CHARSET = "latin-1"

MarkupInput = Union[str, bytes]

_META_CONTENT_TYPE = re.compile(
    r"""<meta[^>]+http-equiv\s*=\s*(["'])Content-Type\1([^>]*?)>""",
    re.IGNORECASE,
)
_META_CONTENT_TYPE_WITH_SPACE = re.compile(
    r"""\s*<meta[^>]+http-equiv\s*=\s*(["'])Content-Type\1([^>]*?)>""",
    re.IGNORECASE,
)
_CONTENT_ATTRIBUTE = re.compile(r"""content\s*=\s*(["'])(.+?)\1""", re.IGNORECASE)
_XML_ENCODING = re.compile(
    r"""<\?xml[^>]+encoding\s*=\s*(["'])(.*?)\1""", re.IGNORECASE
)
_XML_DECLARATION = re.compile(r"^\s*<\?xml[\s?]")
_XML_DECLARATION_TAG = re.compile(r"^\s*<\?xml[\s?][^>]*\?>\s*")
_XML_DECLARATION_BYTES = re.compile(rb"^\s*<\?xml[\s?][^>]*\?>\s*")
_HEAD_OPEN = re.compile(r"<head(?=[\s>/])([^>]*)>", re.IGNORECASE)
_HEAD_PRESENT = re.compile(r"<head[\s>/]", re.IGNORECASE)
_HTML_OPEN = re.compile(r"<html(?=[\s>/])([^>]*)>", re.IGNORECASE)
_HTML_PRESENT = re.compile(r"<html[\s>/]", re.IGNORECASE)


def content_type_to_array(content_type: str) -> Tuple[str, Optional[str]]:
    """Split ``type[;charset=value]`` into ``(type, charset)``.

    The charset is taken from the parameter value when there is one, otherwise
    from the bare second segment, so both ``text/xml;charset=utf-8`` and
    ``text/xml; utf-8`` yield ``utf-8``.

    Example:
        >>> content_type_to_array("text/xml;charset=utf-8")
        ('text/xml', 'utf-8')
        >>> content_type_to_array("text/html")
        ('text/html', None)
    """
    parts = content_type.strip().lower().split(";")
    media_type = parts[0].strip()
    if len(parts) < 2:
        return media_type, None

    parameter = parts[1].split("=")
    if len(parameter) > 1 and parameter[1].strip():
        value = parameter[1]
    else:
        value = parameter[0]
    charset = value.strip().strip("\"'")
    return media_type, charset or None


def content_type_from_html(markup: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(content_type, charset)`` from the first Content-Type meta tag."""
    meta = _META_CONTENT_TYPE.search(markup)
    if meta is None:
        return None, None
    content = _CONTENT_ATTRIBUTE.search(meta.group(0))
    if content is None:
        return None, None
    return content_type_to_array(content.group(2))


def charset_from_html(markup: str) -> Optional[str]:
    """Return the charset declared by a Content-Type meta tag, if any."""
    return content_type_from_html(markup)[1]


def charset_fix_html(markup: str) -> str:
    """Move the Content-Type meta tag to immediately follow ``<head>``.

    Parsers only honour the charset meta tag reliably when it comes first in the
    head. Markup without such a tag, or without a head to move it into, is
    returned unchanged.
    """
    meta = _META_CONTENT_TYPE_WITH_SPACE.search(markup)
    if meta is None:
        return markup

    remaining = markup[:meta.start()] + markup[meta.end():]
    head = _HEAD_OPEN.search(remaining)
    if head is None:
        return markup
    return remaining[:head.end()] + meta.group(0).lstrip() + remaining[head.end():]


def charset_append_to_html(markup: str, charset: str, xhtml: bool = False) -> str:
    """Replace any Content-Type meta tag with one declaring ``charset``.

    The tag goes right after the opening ``<head>`` tag. Without a head, a head
    block is synthesized after the opening ``<html>`` tag; without either, the
    meta tag is simply prepended.
    """
    markup = _META_CONTENT_TYPE_WITH_SPACE.sub("", markup)
    meta = (
        f'<meta http-equiv="Content-Type" content="text/html;charset={charset}"'
        + (" />" if xhtml else ">")
    )
    if _HEAD_PRESENT.search(markup) is None:
        if _HTML_PRESENT.search(markup) is None:
            return meta + markup
        return _HTML_OPEN.sub(
            lambda match: f"<html{match.group(1)}><head><title></title>{meta}</head>",
            markup,
            count=1,
        )
    return _HEAD_OPEN.sub(
        lambda match: f"<head{match.group(1)}>{meta}", markup, count=1
    )


def charset_from_xml(markup: str) -> Optional[str]:
    """Return the lower-cased ``encoding`` of the XML declaration, if any."""
    match = _XML_ENCODING.search(markup)
    if match is None or not match.group(2):
        return None
    return match.group(2).lower()


def xml_declaration_remove(markup: MarkupInput) -> MarkupInput:
    """Drop a leading XML declaration so HTML parsers do not keep it as a comment."""
    if isinstance(markup, bytes):
        return _XML_DECLARATION_BYTES.sub(b"", markup, count=1)
    return _XML_DECLARATION_TAG.sub("", markup, count=1)


def charset_append_to_xml(markup: str, charset: str) -> str:
    """Prepend an XML declaration naming ``charset``.

    Markup that already starts with an XML declaration is returned unchanged.
    """
    if _XML_DECLARATION.match(markup):
        return markup
    return f'<?xml version="1.0" encoding="{charset}"?>' + markup


@dataclass
class CharsetResolution:
    """Outcome of charset resolution for one piece of markup.

    Attributes:
        markup: Decoded and possibly rewritten markup
        charset: Charset the tree must be built with
        declared_charset: Charset declared inside the markup, if any
        append_declaration: HTML only; the markup declares no charset, or was
            converted to the requested one, so a full document must get a meta
            tag naming ``charset``
        detection: Byte-level detection result, when detection ran
    """

    markup: str
    charset: str
    declared_charset: Optional[str] = None
    append_declaration: bool = False
    detection: Optional[EncodingResult] = None


class CharsetResolver:
    """Compute the effective charset of markup and rewrite its declarations."""

    def __init__(
        self,
        config: Optional[DocumentConfig] = None,
        logger: Optional[CorrelationLogger] = None,
        detector: Optional[CharsetDetector] = None
    ) -> None:
        self.config = config or DocumentConfig.default()
        self.logger = logger or get_logger(__name__, None, "charset")
        if detector is None and self.config.enable_charset_detection:
            detector = CharsetDetector()
        self.detector = detector

    def resolve_html(
        self, markup: MarkupInput, requested_charset: Optional[str] = None
    ) -> CharsetResolution:
        """Resolve the charset of HTML markup.

        Args:
            markup: HTML text, or raw bytes still to be decoded
            requested_charset: Charset asked for by the caller

        Returns:
            CharsetResolution with decoded markup and the charset to build with
        """
        sniffed, bom = self.sniff(markup)
        declared = charset_from_html(sniffed)
        charset = declared or requested_charset or self.config.default_charset
        source_charset = bom.encoding if bom else charset

        # Undeclared markup counts as ISO-8859-1 when deciding on re-encoding,
        # but still gets an explicit declaration later on.
        document_charset = declared or HTTP_DEFAULT_CHARSET
        append_declaration = declared is None

        detection = None
        convert = False
        if (
            requested_charset
            and not same_charset(requested_charset, document_charset)
            and self.detector is not None
        ):
            detection = self._detect(markup, [document_charset, requested_charset])
            detected = detection.encoding if detection else document_charset
            self.logger.debug(
                "Verified document charset",
                extra={
                    "declared": declared,
                    "requested": requested_charset,
                    "detected": detected,
                },
            )
            if not same_charset(detected, requested_charset):
                source_charset = detected
                charset = requested_charset
                convert = True

        text = self._decode(markup, source_charset, bom)
        if declared:
            text = charset_fix_html(text)
        self.logger.debug(
            "Resolved HTML charset",
            extra={"declared": declared, "charset": charset, "converted": convert},
        )

        return CharsetResolution(
            markup=text,
            charset=self.known_charset(charset),
            declared_charset=declared,
            append_declaration=append_declaration or convert,
            detection=detection,
        )

    def resolve_xml(
        self,
        markup: MarkupInput,
        requested_charset: Optional[str] = None,
        is_xhtml: bool = False
    ) -> CharsetResolution:
        """Resolve the charset of XML or XHTML markup.

        The XML declaration wins over everything except an explicitly requested
        charset. XHTML without one falls back to its Content-Type meta tag, which
        then also wins over the requested charset and is turned into an XML
        declaration.
        """
        sniffed, bom = self.sniff(markup)
        declared = charset_from_xml(sniffed)
        meta_declared = None
        if not declared and is_xhtml:
            meta_declared = charset_from_html(sniffed)

        document_charset = declared or meta_declared
        charset = requested_charset or document_charset or self.config.default_charset
        if meta_declared:
            charset = meta_declared

        source_charset = bom.encoding if bom else (document_charset or charset)
        text = self._decode(markup, source_charset, bom)
        if meta_declared:
            text = charset_append_to_xml(text, meta_declared)
        self.logger.debug(
            "Resolved XML charset",
            extra={"declared": document_charset, "charset": charset},
        )

        return CharsetResolution(
            markup=text,
            charset=self.known_charset(charset),
            declared_charset=document_charset,
        )

    def sniff(self, markup: MarkupInput) -> Tuple[str, Optional[EncodingResult]]:
        """Return a text view of ``markup`` good enough to find declarations.

        Bytes with a BOM are decoded accordingly; other bytes are viewed as
        Latin-1, which keeps every ASCII-compatible declaration intact.
        """
        if isinstance(markup, str):
            return markup, None
        detector = self.detector or CharsetDetector()
        bom = detector.bom_detector.detect(markup)
        if bom is not None:
            return decode_markup(markup, bom), bom
        return markup.decode(SNIFF_CHARSET), None

    def _detect(
        self, markup: MarkupInput, candidates: list
    ) -> Optional[EncodingResult]:
        if isinstance(markup, str):
            # Already decoded: trust the document
            return None
        return self.detector.detect(markup, candidates + [AUTO])

    def _decode(
        self, markup: MarkupInput, charset: str, bom: Optional[EncodingResult]
    ) -> str:
        if isinstance(markup, str):
            return markup
        if bom is not None:
            return decode_markup(markup, bom)
        return markup.decode(self.known_charset(charset), errors="replace")

    def known_charset(self, charset: str) -> str:
        """Return ``charset``, or the default charset if no codec knows it."""
        if normalize_charset(charset) is None:
            self.logger.warning(
                "Unknown charset replaced by default",
                extra={"charset": charset, "default": self.config.default_charset},
            )
            return self.config.default_charset
        return charset
