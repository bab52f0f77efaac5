"""Tests for dialect classification."""

import pytest

from robust_markup.dom.content_type import (
    HTML_CONTENT_TYPE,
    XHTML_CONTENT_TYPE,
    XML_CONTENT_TYPE,
    Dialect,
    classify,
    is_document_fragment_html,
    is_document_fragment_xml,
    is_xhtml_content_type,
    is_xhtml_markup,
    is_xml_markup,
    select_loader,
)


class TestFragmentDetection:
    """Test fragment detection per dialect."""

    @pytest.mark.parametrize(
        ("markup", "expected"),
        [
            ("<p>hi</p>", True),
            ("<!DOCTYPE html><html><body></body></html>", False),
            ("<html><body></body></html>", False),
            ("<HTML><BODY></BODY></HTML>", False),
            ("<!doctype html><p>x</p>", False),
            ("plain text", True),
        ],
    )
    def test_is_document_fragment_html(self, markup, expected):
        """Test HTML fragment detection."""
        assert is_document_fragment_html(markup) is expected

    def test_is_document_fragment_xml(self):
        """Test XML fragment detection by declaration."""
        assert is_document_fragment_xml("<root/>")
        assert not is_document_fragment_xml('<?xml version="1.0"?><root/>')
        assert not is_document_fragment_xml('<?XML version="1.0"?><root/>')


class TestSniffing:
    """Test markup and content-type sniffing."""

    def test_xml_declaration_within_sniff_window(self):
        """Test that only the leading characters are searched."""
        assert is_xml_markup('<?xml version="1.0"?><root/>')
        assert not is_xml_markup("<p>x</p>")
        assert not is_xml_markup(" " * 150 + "<?xml version='1.0'?>")
        assert is_xml_markup(" " * 150 + "<?xml version='1.0'?>", sniff_length=200)

    def test_xhtml_markup(self):
        """Test XHTML doctype detection."""
        assert is_xhtml_markup(
            '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" "x.dtd"><html/>'
        )
        assert not is_xhtml_markup("<root/>")

    def test_xhtml_content_type(self):
        """Test XHTML content types."""
        assert is_xhtml_content_type("application/xhtml+xml")
        assert not is_xhtml_content_type("text/xml")
        assert not is_xhtml_content_type(None)

    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("text/html", "html"),
            ("text/html;charset=utf-8", "html"),
            ("text/xml", "xml"),
            ("application/xhtml+xml", "xml"),
            ("application/rss+xml", "xml"),
            ("text/plain", None),
            ("", None),
            (None, None),
        ],
    )
    def test_select_loader(self, content_type, expected):
        """Test loader selection from explicit content types."""
        assert select_loader(content_type) == expected


class TestClassify:
    """Test full classification."""

    def test_sniffed_html_fragment(self):
        """Test markup without content type or declaration."""
        dialect = classify("<b>bold</b>")

        assert dialect.is_html
        assert not dialect.is_xml
        assert dialect.is_document_fragment is True
        assert dialect.default_content_type == HTML_CONTENT_TYPE

    def test_sniffed_xml_document(self):
        """Test markup with an XML declaration."""
        dialect = classify('<?xml version="1.0"?><root/>')

        assert dialect.is_xml
        assert not dialect.is_xhtml
        assert dialect.is_document_fragment is False
        assert dialect.default_content_type == XML_CONTENT_TYPE

    def test_explicit_xml_fragment(self):
        """Test XML markup without declaration."""
        dialect = classify("<item>1</item>", "text/xml")

        assert dialect.is_xml
        assert dialect.is_document_fragment is True

    def test_xhtml_by_content_type(self):
        """Test XHTML decided by content type."""
        dialect = classify("<p>x</p>", "Application/XHTML+XML")

        assert dialect.is_xml and dialect.is_xhtml
        assert dialect.is_document_fragment is True
        assert dialect.default_content_type == XHTML_CONTENT_TYPE

    def test_xhtml_by_doctype(self):
        """Test XHTML decided by doctype."""
        markup = (
            '<?xml version="1.0"?><!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" '
            '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">'
            '<html xmlns="http://www.w3.org/1999/xhtml"></html>'
        )
        dialect = classify(markup)

        assert dialect.is_xhtml
        assert dialect.is_document_fragment is False

    def test_explicit_html_wins_over_declaration(self):
        """Test that an explicit HTML content type is not second-guessed."""
        assert classify('<?xml version="1.0"?><p/>', "text/html").is_html


class TestDialect:
    """Test Dialect value object."""

    def test_reset_keeps_fragment_decision(self):
        """Test that reset only clears dialect flags."""
        dialect = Dialect(is_xml=True, is_xhtml=True, is_document_fragment=True)
        dialect.reset()

        assert not (dialect.is_html or dialect.is_xml or dialect.is_xhtml)
        assert dialect.is_document_fragment is True
