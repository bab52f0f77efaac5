"""Tests for byte-level charset detection."""

import pytest

from robust_markup.character.encoding import (
    AUTO,
    BOMDetector,
    CharsetDetector,
    DetectionMethod,
    EncodingResult,
    decode_markup,
    is_ascii_compatible,
    is_single_byte_charset,
    normalize_charset,
    same_charset,
)


class TestEncodingResult:
    """Test EncodingResult dataclass."""

    def test_valid_confidence_range(self):
        """Test boundary confidence values."""
        assert EncodingResult("utf-8", 0.0, DetectionMethod.BOM).confidence == 0.0
        assert EncodingResult("utf-8", 1.0, DetectionMethod.BOM).confidence == 1.0

    def test_invalid_confidence_range(self):
        """Test that invalid confidence values raise ValueError."""
        with pytest.raises(ValueError, match="Confidence must be between 0.0 and 1.0"):
            EncodingResult("utf-8", 1.5, DetectionMethod.CANDIDATE)


class TestCharsetNames:
    """Test charset name helpers."""

    def test_normalize_charset(self):
        """Test codec name normalization."""
        assert normalize_charset("UTF8") == "utf-8"
        assert normalize_charset(" latin1 ") == "iso8859-1"
        assert normalize_charset("no-such-charset") is None
        assert normalize_charset(None) is None

    def test_same_charset(self):
        """Test comparison by codec."""
        assert same_charset("latin1", "ISO-8859-1")
        assert same_charset("utf-8", "UTF8")
        assert not same_charset("utf-8", "ISO-8859-1")
        assert same_charset("x-unknown", "X-UNKNOWN")

    def test_single_byte_charsets(self):
        """Test single-byte classification."""
        assert is_single_byte_charset("ISO-8859-1")
        assert is_single_byte_charset("koi8-r")
        assert not is_single_byte_charset("utf-8")
        assert not is_single_byte_charset("utf-16")
        assert not is_single_byte_charset("no-such-charset")

    def test_ascii_compatibility(self):
        """Test ASCII compatibility of markup delimiters."""
        assert is_ascii_compatible("utf-8")
        assert is_ascii_compatible("ISO-8859-1")
        assert not is_ascii_compatible("utf-16")


class TestBOMDetector:
    """Test BOM detection functionality."""

    def test_utf8_bom_detection(self):
        """Test UTF-8 BOM detection."""
        result = BOMDetector().detect(b"\xef\xbb\xbf<p>test</p>")

        assert result is not None
        assert result.encoding == "utf-8"
        assert result.confidence == 1.0
        assert result.method == DetectionMethod.BOM
        assert result.bom_length == 3

    def test_utf32_preferred_over_utf16(self):
        """Test that the longer UTF-32 LE BOM wins over UTF-16 LE."""
        result = BOMDetector().detect(b"\xff\xfe\x00\x00<\x00\x00\x00")

        assert result.encoding == "utf-32-le"
        assert result.bom_length == 4

    def test_no_bom(self):
        """Test data without BOM."""
        assert BOMDetector().detect(b"<p>test</p>") is None
        assert BOMDetector().detect(b"") is None


class TestCharsetDetector:
    """Test candidate-based charset detection."""

    def test_bom_wins_over_candidates(self):
        """Test that a BOM overrides every candidate."""
        result = CharsetDetector().detect(b"\xef\xbb\xbf<p/>", ["ISO-8859-1"])

        assert result.encoding == "utf-8"
        assert result.method == DetectionMethod.BOM

    def test_ascii_data_matches_first_compatible_candidate(self):
        """Test pure ASCII data."""
        result = CharsetDetector().detect(b"<p>hi</p>", ["utf-16", "ISO-8859-1", "utf-8"])

        assert result.encoding == "ISO-8859-1"
        assert result.method == DetectionMethod.ASCII

    def test_multi_byte_candidate_preferred(self):
        """Test that strictly decoding multi-byte candidates go first."""
        data = "<p>café</p>".encode("utf-8")
        result = CharsetDetector().detect(data, ["ISO-8859-1", "utf-8"])

        assert result.encoding == "utf-8"
        assert result.method == DetectionMethod.CANDIDATE
        assert result.confidence == pytest.approx(0.9)

    def test_single_byte_fallback(self):
        """Test that a single-byte candidate catches undecodable data."""
        data = "<p>café</p>".encode("latin-1")
        result = CharsetDetector().detect(data, ["ISO-8859-1", "utf-8"])

        assert result.encoding == "ISO-8859-1"
        assert result.confidence == pytest.approx(0.6)

    def test_no_matching_candidate(self):
        """Test that None is returned when nothing fits."""
        data = "<p>café</p>".encode("latin-1")
        assert CharsetDetector().detect(data, ["utf-8"]) is None

    def test_unknown_candidates_ignored(self):
        """Test that unknown charset names are skipped."""
        result = CharsetDetector().detect(b"<p/>", ["no-such-charset", "utf-8"])
        assert result.encoding == "utf-8"

    def test_auto_detection(self):
        """Test heuristic detection through the AUTO token."""
        data = '<meta charset="utf-8"><p>Grüße</p>'.encode("utf-8")
        result = CharsetDetector().detect(data, ["ascii", AUTO])

        assert result is not None
        assert result.method == DetectionMethod.AUTO
        assert normalize_charset(result.encoding) == "utf-8"
        assert result.confidence == pytest.approx(0.5)

    def test_utf8_data_skips_single_byte_candidates(self):
        """Test that valid UTF-8 is not claimed by a single-byte candidate."""
        data = '<meta charset="utf-8"><p>café</p>'.encode("utf-8")

        assert CharsetDetector().detect(data, ["ISO-8859-1"]) is None

        result = CharsetDetector().detect(data, ["ISO-8859-1", AUTO])
        assert result.method == DetectionMethod.AUTO
        assert normalize_charset(result.encoding) == "utf-8"


def test_decode_markup_skips_bom():
    """Test that decoding honours the BOM length."""
    data = b"\xef\xbb\xbf<p>caf\xc3\xa9</p>"
    result = BOMDetector().detect(data)
    assert decode_markup(data, result) == "<p>café</p>"
