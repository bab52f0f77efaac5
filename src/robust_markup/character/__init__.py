"""Character layer: charset detection and charset resolution for markup."""

from .charset import (
    CharsetResolution,
    CharsetResolver,
    charset_append_to_html,
    charset_append_to_xml,
    charset_fix_html,
    charset_from_html,
    charset_from_xml,
    content_type_from_html,
    content_type_to_array,
)
from .encoding import (
    AUTO,
    BOMDetector,
    CharsetDetector,
    DetectionMethod,
    EncodingResult,
    normalize_charset,
    same_charset,
)

__all__ = [
    # Modules
    "charset",
    "encoding",
    # Charset resolution
    "CharsetResolution",
    "CharsetResolver",
    "charset_append_to_html",
    "charset_append_to_xml",
    "charset_fix_html",
    "charset_from_html",
    "charset_from_xml",
    "content_type_from_html",
    "content_type_to_array",
    # Detection
    "AUTO",
    "BOMDetector",
    "CharsetDetector",
    "DetectionMethod",
    "EncodingResult",
    "normalize_charset",
    "same_charset",
]
