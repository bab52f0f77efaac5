"""Byte-level charset detection among a set of candidate charsets.

This module verifies which of a handful of candidate charsets (typically the one
declared inside the markup and the one requested by the caller) actually matches
the bytes, in the following order: BOM detection, strict decoding with multi-byte
candidates, single-byte candidates, and finally ``bs4.UnicodeDammit`` heuristics
for the ``AUTO`` token.
"""

import codecs
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import ClassVar, Dict, Iterable, List, Optional

from bs4 import UnicodeDammit

# Pseudo charset asking for heuristic detection
AUTO = "AUTO"

ASCII_MAX = 0x80

# Every high byte; single-byte charsets decode all of them one to one
_HIGH_BYTES = bytes(range(ASCII_MAX, 0x100))

# Confidence scores per detection method
CONFIDENCE_BOM = 1.0
CONFIDENCE_ASCII = 0.9
CONFIDENCE_MULTI_BYTE = 0.9
CONFIDENCE_SINGLE_BYTE = 0.6
CONFIDENCE_AUTO = 0.5


class DetectionMethod(Enum):
    """Enumeration of charset detection methods."""
    BOM = "bom"
    ASCII = "ascii"
    CANDIDATE = "candidate"
    AUTO = "auto"


@dataclass
class EncodingResult:
    """Result of charset detection.

    Attributes:
        encoding: Detected charset, spelled as the candidate that matched
        confidence: Confidence score from 0.0 to 1.0
        method: Detection method used
        bom_length: Number of leading BOM bytes to skip before decoding
    """
    encoding: str
    confidence: float
    method: DetectionMethod
    bom_length: int = 0

    def __post_init__(self) -> None:
        """Validate confidence score range."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"Confidence must be between 0.0 and 1.0, got {self.confidence}"
            )


def normalize_charset(name: Optional[str]) -> Optional[str]:
    """Return the canonical Python codec name for ``name``, or None if unknown."""
    if not name:
        return None
    try:
        return codecs.lookup(name.strip()).name
    except LookupError:
        return None


def same_charset(first: Optional[str], second: Optional[str]) -> bool:
    """Compare two charset names by the codec they resolve to."""
    first_codec = normalize_charset(first)
    second_codec = normalize_charset(second)
    if first_codec is None or second_codec is None:
        return (first or "").upper() == (second or "").upper()
    return first_codec == second_codec


@lru_cache(maxsize=64)
def is_single_byte_charset(name: str) -> bool:
    """Check whether ``name`` maps every byte to exactly one character.

    Such charsets decode any input without error, so a successful decode says
    nothing about whether they are the right one.
    """
    try:
        decoded = _HIGH_BYTES.decode(name)
    except (LookupError, UnicodeDecodeError):
        return False
    return len(decoded) == len(_HIGH_BYTES)


@lru_cache(maxsize=64)
def is_ascii_compatible(name: str) -> bool:
    """Check whether ``name`` encodes markup delimiters as plain ASCII."""
    try:
        return "<?=>/".encode(name) == b"<?=>/"
    except (LookupError, UnicodeEncodeError):
        return False


def _decodes(data: bytes, name: str) -> bool:
    try:
        data.decode(name)
    except (LookupError, UnicodeDecodeError):
        return False
    return True


class BOMDetector:
    """Byte Order Mark (BOM) detection for the Unicode encodings."""

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
        b"\xff\xfe": "utf-16-le",
        b"\xfe\xff": "utf-16-be",
        b"\xff\xfe\x00\x00": "utf-32-le",
        b"\x00\x00\xfe\xff": "utf-32-be",
    }

    def detect(self, data: bytes) -> Optional[EncodingResult]:
        """Detect encoding based on BOM.

        Args:
            data: Byte data to analyze

        Returns:
            EncodingResult if BOM detected, None otherwise
        """
        if not data:
            return None

        # Check for UTF-32 BOMs first (longer patterns)
        for bom_bytes, encoding in sorted(
            self.BOM_PATTERNS.items(), key=lambda x: len(x[0]), reverse=True
        ):
            if data.startswith(bom_bytes):
                return EncodingResult(
                    encoding=encoding,
                    confidence=CONFIDENCE_BOM,
                    method=DetectionMethod.BOM,
                    bom_length=len(bom_bytes),
                )

        return None


class CharsetDetector:
    """Pick the candidate charset that matches a byte string.

    Candidates are tried in the order given, multi-byte charsets before
    single-byte ones; the ``AUTO`` token enables heuristic detection when no
    explicit candidate fits.
    """

    def __init__(self) -> None:
        self.bom_detector = BOMDetector()

    def detect(
        self,
        data: bytes,
        candidates: Iterable[str],
        is_html: bool = True
    ) -> Optional[EncodingResult]:
        """Detect which candidate charset ``data`` is encoded in.

        Args:
            data: Raw markup bytes
            candidates: Charset names, optionally including ``AUTO``
            is_html: Whether heuristic detection may look at HTML meta tags

        Returns:
            EncodingResult, or None if no candidate matches
        """
        candidates = list(candidates)
        explicit = [
            name for name in candidates
            if name and name.upper() != AUTO and normalize_charset(name)
        ]
        use_auto = any(name and name.upper() == AUTO for name in candidates)

        bom_result = self.bom_detector.detect(data)
        if bom_result is not None:
            return bom_result

        if not data or max(data) < ASCII_MAX:
            for name in explicit:
                if is_ascii_compatible(name):
                    return EncodingResult(name, CONFIDENCE_ASCII, DetectionMethod.ASCII)

        multi_byte = [name for name in explicit if not is_single_byte_charset(name)]
        for name in multi_byte:
            if _decodes(data, name):
                return EncodingResult(
                    name, CONFIDENCE_MULTI_BYTE, DetectionMethod.CANDIDATE
                )

        # Valid UTF-8 beyond ASCII is left to heuristic detection
        if not _decodes(data, "utf-8"):
            for name in explicit:
                if is_single_byte_charset(name):
                    return EncodingResult(
                        name, CONFIDENCE_SINGLE_BYTE, DetectionMethod.CANDIDATE
                    )

        if use_auto:
            return self._detect_auto(data, explicit, is_html)

        return None

    def _detect_auto(
        self, data: bytes, explicit: List[str], is_html: bool
    ) -> Optional[EncodingResult]:
        user_encodings = [name for name in explicit if not is_single_byte_charset(name)]
        dammit = UnicodeDammit(data, user_encodings=user_encodings, is_html=is_html)
        if dammit.unicode_markup is None or not dammit.original_encoding:
            return None
        return EncodingResult(
            dammit.original_encoding, CONFIDENCE_AUTO, DetectionMethod.AUTO
        )


def decode_markup(data: bytes, result: EncodingResult) -> str:
    """Decode ``data`` with a detection result, skipping any BOM."""
    return data[result.bom_length:].decode(result.encoding, errors="replace")
