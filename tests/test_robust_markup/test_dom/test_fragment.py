"""Tests for synthetic fragment documents."""

from types import SimpleNamespace

import pytest

from robust_markup.dom.content_type import Dialect
from robust_markup.dom.fragment import (
    FAKE_CLOSE,
    FAKE_OPEN,
    FAKE_OPEN_XHTML,
    XHTML_DOCTYPE,
    document_fragment_load_markup,
    document_fragment_to_markup,
    html_fragment_document,
    strip_html_wrapper,
    strip_xml_wrapper,
    suspended_fragment_flag,
    xml_fragment_document,
)
from robust_markup.dom.wrapper import DocumentWrapper
from robust_markup.shared.config import DEFAULT_DOCTYPE
from robust_markup.shared.errors import FragmentError, MarkupLoadError


class TestSuspendedFragmentFlag:
    """Test the scoped fragment flag guard."""

    def test_flag_cleared_and_restored(self):
        """Test normal exit."""
        holder = SimpleNamespace(dialect=Dialect(is_document_fragment=True))

        with suspended_fragment_flag(holder):
            assert holder.dialect.is_document_fragment is False

        assert holder.dialect.is_document_fragment is True

    def test_flag_restored_on_error(self):
        """Test that the previous decision survives an exception."""
        holder = SimpleNamespace(dialect=Dialect(is_document_fragment=None))

        with pytest.raises(RuntimeError):
            with suspended_fragment_flag(holder):
                raise RuntimeError("boom")

        assert holder.dialect.is_document_fragment is None


class TestSyntheticDocuments:
    """Test synthetic document construction."""

    def test_xml_fragment_document(self):
        """Test the plain XML wrapper."""
        assert xml_fragment_document("UTF-8", "<a/>") == (
            f'<?xml version="1.0" encoding="UTF-8"?>{FAKE_OPEN}<a/>{FAKE_CLOSE}'
        )

    def test_xhtml_fragment_document(self):
        """Test the namespaced XHTML wrapper."""
        document = xml_fragment_document("UTF-8", "<p/>", xhtml=True)

        assert XHTML_DOCTYPE in document
        assert f"{FAKE_OPEN_XHTML}<p/>{FAKE_CLOSE}" in document

    def test_html_fragment_document_adds_body(self):
        """Test that a body is supplied around bare markup."""
        document = html_fragment_document("utf-8", DEFAULT_DOCTYPE, "<b>x</b>")

        assert document.startswith(DEFAULT_DOCTYPE)
        assert "charset=utf-8" in document
        assert document.endswith("<body><b>x</b></body></html>")

    def test_html_fragment_document_keeps_body(self):
        """Test markup that already has a body."""
        document = html_fragment_document("utf-8", DEFAULT_DOCTYPE, '<BODY class="c">x</BODY>')

        assert document.count("<body") + document.count("<BODY") == 1
        assert document.endswith('<BODY class="c">x</BODY></html>')


class TestWrapperStripping:
    """Test recovery of fragment markup from serialized documents."""

    def test_strip_xml_wrapper(self):
        """Test the plain wrapper."""
        markup = "<?xml version='1.0' encoding='UTF-8'?>\n<fake><a>1</a>text</fake>\n"
        assert strip_xml_wrapper(markup) == "<a>1</a>text"

    def test_strip_xhtml_wrapper(self):
        """Test the namespaced wrapper."""
        markup = f"<?xml version='1.0'?>\n{XHTML_DOCTYPE}\n{FAKE_OPEN_XHTML}<p>x</p>{FAKE_CLOSE}"
        assert strip_xml_wrapper(markup, xhtml=True) == "<p>x</p>"

    def test_strip_empty_xml_wrapper(self):
        """Test the self-closed wrapper of an empty fragment."""
        assert strip_xml_wrapper("<?xml version='1.0'?>\n<fake/>\n") == ""

    def test_strip_xml_wrapper_missing(self):
        """Test that missing boundaries are fatal."""
        with pytest.raises(FragmentError):
            strip_xml_wrapper("<root/>")

    def test_strip_html_wrapper(self):
        """Test body boundaries with attributes."""
        markup = '<html><head></head><body class="c"><p>x</p></body></html>'
        assert strip_html_wrapper(markup) == "<p>x</p>"

    def test_strip_html_wrapper_missing(self):
        """Test that missing boundaries are fatal."""
        with pytest.raises(FragmentError, match="boundaries not found"):
            strip_html_wrapper("<p>x</p>")


class TestFragmentLoading:
    """Test loading fragments into wrappers."""

    def test_html_fragment_root_is_body(self):
        """Test that the body becomes the logical root."""
        wrapper = DocumentWrapper()
        wrapper.dialect = Dialect(is_html=True)

        assert document_fragment_load_markup(wrapper, "UTF-8", "<p>a</p><p>b</p>")
        assert wrapper.root.tag == "body"
        assert [child.tag for child in wrapper.root] == ["p", "p"]
        assert wrapper.is_document_fragment is True

    def test_xml_fragment_root_is_fake(self):
        """Test that the synthetic element becomes the logical root."""
        wrapper = DocumentWrapper()
        wrapper.dialect = Dialect(is_xml=True)

        assert document_fragment_load_markup(wrapper, "UTF-8", "<a>1</a><b/>")
        assert wrapper.root.tag == "fake"
        assert [child.tag for child in wrapper.root] == ["a", "b"]

    def test_empty_fragment(self):
        """Test an empty synthetic document for later imports."""
        wrapper = DocumentWrapper()
        wrapper.dialect = Dialect(is_xml=True)

        assert document_fragment_load_markup(wrapper, "UTF-8")
        assert len(wrapper.root) == 0

    def test_malformed_xml_fragment(self):
        """Test that XML errors propagate and the flag is restored."""
        wrapper = DocumentWrapper()
        wrapper.dialect = Dialect(is_xml=True)

        with pytest.raises(MarkupLoadError):
            document_fragment_load_markup(wrapper, "UTF-8", "<a><b></a>")

        assert wrapper.is_document_fragment is None

    def test_fragment_to_markup(self):
        """Test recovery through the synthetic document."""
        wrapper = DocumentWrapper("<i>a</i> and <i>b</i>")

        assert document_fragment_to_markup(wrapper) == "<i>a</i> and <i>b</i>"
        assert wrapper.is_document_fragment is True
