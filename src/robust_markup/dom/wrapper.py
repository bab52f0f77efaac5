"""Document wrapper: loading, serialization and import of HTML/XML markup.

``DocumentWrapper`` owns one lxml tree. Loading classifies the markup as HTML,
XML or XHTML, resolves its charset, and builds the tree either directly or, for
fragments, through a synthetic document whose subtree becomes the wrapper's
root. Serialization and import apply the same synthetic-document technique in
reverse.
"""

import codecs
import uuid
from enum import Enum, auto
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from lxml import etree

from robust_markup.character.charset import (
    CharsetResolver,
    charset_append_to_html,
    charset_append_to_xml,
    charset_from_xml,
    content_type_to_array,
    xml_declaration_remove,
)
from robust_markup.shared.config import DEBUG_OFF, DocumentConfig
from robust_markup.shared.errors import (
    FragmentError,
    MarkupLoadError,
    WrapperStateError,
)
from robust_markup.shared.logging import get_logger

from .content_type import (
    HTML_CONTENT_TYPE,
    Dialect,
    is_document_fragment_html,
    is_document_fragment_xhtml,
    is_document_fragment_xml,
    is_xhtml_content_type,
    is_xhtml_markup,
    is_xml_markup,
    select_loader,
)
from .fixup import markup_fix_xhtml
from .fragment import (
    XHTML_NAMESPACE,
    document_fragment_load_markup,
    document_fragment_to_markup,
)
from .nodes import (
    Node,
    append_node,
    as_tree,
    child_nodes,
    copy_node,
    flatten_inner,
    is_tree,
    node_to_markup,
)

MarkupSource = Union[str, bytes, etree._ElementTree, etree._Element]
NodeSource = Union[str, bytes, Node, Iterable[Node]]
ParserFactory = Callable[[str], Any]

# Charset the engine falls back to when it does not know the resolved one
ENGINE_FALLBACK_CHARSET = "UTF-8"


class LoadState(Enum):
    """Lifecycle of a document wrapper."""

    EMPTY = auto()
    LOADING = auto()
    LOADED = auto()
    FAILED = auto()


class DocumentWrapper:
    """One logical HTML, XML or XHTML document, or a fragment of one.

    Attributes:
        document: The owned lxml tree
        root: Logical root; the tree itself for full documents, a subtree
            element for fragments
        content_type: Normalized MIME type
        charset: Charset the tree was built with
        dialect: HTML/XML/XHTML and fragment flags
        xpath: Query evaluator bound to ``document``
        id: Opaque identifier, also used as logging correlation ID
    """

    def __init__(
        self,
        markup: Optional[MarkupSource] = None,
        content_type: Optional[str] = None,
        document_id: Optional[str] = None,
        config: Optional[DocumentConfig] = None
    ) -> None:
        self.config = config or DocumentConfig.default()
        self.id = document_id or uuid.uuid4().hex
        self.logger = get_logger(__name__, self.id, "loader")
        self.resolver = CharsetResolver(
            self.config, self.logger.for_component("charset")
        )

        self.document: Optional[etree._ElementTree] = None
        self.root: Optional[Union[etree._ElementTree, etree._Element]] = None
        self.xpath: Optional[etree.XPathDocumentEvaluator] = None
        self.content_type = ""
        self.charset: Optional[str] = None
        self.dialect = Dialect()
        self.state = LoadState.EMPTY

        if markup is not None:
            self.load(markup, content_type)

    def __repr__(self) -> str:
        return (
            f"<DocumentWrapper id={self.id} state={self.state.name} "
            f"content_type={self.content_type!r} charset={self.charset!r}>"
        )

    # Dialect flags

    @property
    def tree(self) -> Optional[etree._ElementTree]:
        return self.document

    @property
    def is_html(self) -> bool:
        return self.dialect.is_html

    @property
    def is_xml(self) -> bool:
        return self.dialect.is_xml

    @property
    def is_xhtml(self) -> bool:
        return self.dialect.is_xhtml

    @property
    def is_document_fragment(self) -> Optional[bool]:
        return self.dialect.is_document_fragment

    @is_document_fragment.setter
    def is_document_fragment(self, value: Optional[bool]) -> None:
        self.dialect.is_document_fragment = value

    def reset(self) -> None:
        """Return to the empty state, forgetting the fragment decision too."""
        self.document = None
        self.root = None
        self.xpath = None
        self.content_type = ""
        self.charset = None
        self.dialect = Dialect()
        self.state = LoadState.EMPTY

    # Loading

    def load(self, markup: MarkupSource, content_type: Optional[str] = None) -> bool:
        """Build the tree from markup or adopt a pre-built tree.

        Args:
            markup: Markup text, raw bytes, or an lxml tree/element
            content_type: Optional ``type[;charset=value]``

        Returns:
            True on success, False if HTML could not be parsed

        Raises:
            MarkupLoadError: If markup loaded as XML cannot be parsed
        """
        if self.state is not LoadState.EMPTY:
            self.reset()
        self.state = LoadState.LOADING
        self.content_type = (content_type or "").lower()

        try:
            if isinstance(markup, (etree._ElementTree, etree._Element)):
                loaded = self._adopt_tree(as_tree(markup))
            else:
                loaded = self._load_markup(markup)
        except MarkupLoadError:
            self.state = LoadState.FAILED
            raise

        if not loaded:
            self.state = LoadState.FAILED
            self.logger.warning(
                "Markup could not be loaded",
                extra={"content_type": self.content_type},
            )
            return False

        if not self.content_type:
            self.content_type = self.dialect.default_content_type
        self.xpath = etree.XPathDocumentEvaluator(self.document)
        self._after_markup_load()
        self.state = LoadState.LOADED
        self.logger.debug(
            "Markup loaded",
            extra={
                "content_type": self.content_type,
                "charset": self.charset,
                "is_document_fragment": self.is_document_fragment,
            },
        )
        return True

    def _adopt_tree(self, tree: etree._ElementTree) -> bool:
        self.document = tree
        self.root = tree
        self.charset = tree.docinfo.encoding
        self.dialect.reset()
        root = tree.getroot()
        loader = select_loader(self.content_type)
        if loader is None:
            # Only the HTML parser leaves the document without an XML version
            loader = "html" if tree.docinfo.xml_version is None else "xml"
        if loader == "html":
            self.dialect.is_html = True
        else:
            self.dialect.is_xml = True
            self.dialect.is_xhtml = is_xhtml_content_type(self.content_type) or (
                root is not None and etree.QName(root).namespace == XHTML_NAMESPACE
            )
        self.dialect.is_document_fragment = False
        return True

    def _load_markup(self, markup: Union[str, bytes]) -> bool:
        requested_charset = None
        if self.content_type:
            requested_charset = content_type_to_array(self.content_type)[1]

        loader = select_loader(self.content_type)
        if loader == "html":
            return self.load_markup_html(markup, requested_charset)
        if loader == "xml":
            return self.load_markup_xml(markup, requested_charset)

        sniffed, _ = self.resolver.sniff(markup)
        if is_xml_markup(sniffed, self.config.xml_sniff_length):
            self.logger.debug("Sniffed XML declaration")
            try:
                return self.load_markup_xml(markup, requested_charset)
            except MarkupLoadError:
                if not self.is_xhtml:
                    raise
                self.logger.warning("XHTML markup is not well-formed, loading as HTML")
                requested_charset = requested_charset or charset_from_xml(sniffed)
                markup = xml_declaration_remove(markup)
        return self.load_markup_html(markup, requested_charset)

    def load_markup_html(
        self, markup: Union[str, bytes], requested_charset: Optional[str] = None
    ) -> bool:
        """Load markup as HTML; parse failures return False."""
        self.dialect.reset()
        self.dialect.is_html = True
        if self.dialect.is_document_fragment is None:
            sniffed, _ = self.resolver.sniff(markup)
            self.dialect.is_document_fragment = is_document_fragment_html(sniffed)

        resolution = self.resolver.resolve_html(markup, requested_charset)
        text, charset = resolution.markup, resolution.charset

        if self.is_document_fragment:
            loaded = document_fragment_load_markup(self, charset, text)
        else:
            if resolution.append_declaration:
                text = charset_append_to_html(text, charset)
            loaded = self._create_document(text, charset, self._html_parser)
            if loaded:
                self.root = self.document

        if loaded and not self.content_type:
            self.content_type = HTML_CONTENT_TYPE
        return loaded

    def load_markup_xml(
        self, markup: Union[str, bytes], requested_charset: Optional[str] = None
    ) -> bool:
        """Load markup as XML or XHTML.

        Raises:
            MarkupLoadError: If the markup is not well-formed
        """
        self.dialect.reset()
        self.dialect.is_xml = True
        sniffed, _ = self.resolver.sniff(markup)
        content_type_xhtml = is_xhtml_content_type(self.content_type)
        markup_xhtml = is_xhtml_markup(sniffed)
        self.dialect.is_xhtml = content_type_xhtml or markup_xhtml
        if self.dialect.is_document_fragment is None:
            if self.is_xhtml:
                fragment = is_document_fragment_xhtml(sniffed)
            else:
                fragment = is_document_fragment_xml(sniffed)
            self.dialect.is_document_fragment = fragment

        resolution = self.resolver.resolve_xml(
            markup, requested_charset, self.is_xhtml
        )
        text, charset = resolution.markup, resolution.charset

        if self.is_document_fragment:
            loaded = document_fragment_load_markup(self, charset, text)
        else:
            if (
                content_type_xhtml
                and not markup_xhtml
                and not resolution.declared_charset
            ):
                text = charset_append_to_xml(text, charset)
            loaded = self._create_document(text, charset, self._xml_parser)
            if loaded:
                self.root = self.document

        if not loaded:
            raise MarkupLoadError()
        if not self.content_type:
            self.content_type = self.dialect.default_content_type
        return True

    def _html_parser(self, charset: str) -> etree.HTMLParser:
        return etree.HTMLParser(
            encoding=charset,
            recover=True,
            no_network=True,
            remove_blank_text=False,
            remove_comments=False,
        )

    def _xml_parser(self, charset: str) -> etree.XMLParser:
        return etree.XMLParser(
            encoding=charset,
            load_dtd=False,
            attribute_defaults=False,
            no_network=True,
            resolve_entities=True,
            recover=False,
            remove_blank_text=False,
        )

    def _engine_input(
        self, text: str, charset: str, parser_factory: ParserFactory
    ) -> Tuple[bytes, Any]:
        try:
            codecs.lookup(charset)
            return text.encode(charset, errors="xmlcharrefreplace"), parser_factory(charset)
        except LookupError:
            self.logger.warning(
                "Charset unknown to the tree engine",
                extra={"charset": charset, "fallback": ENGINE_FALLBACK_CHARSET},
            )
            data = text.encode(ENGINE_FALLBACK_CHARSET, errors="xmlcharrefreplace")
            return data, parser_factory(ENGINE_FALLBACK_CHARSET)

    def _create_document(
        self,
        text: str,
        charset: str,
        parser_factory: ParserFactory
    ) -> bool:
        """Build a fresh tree, replacing any previous one."""
        self.document = None
        self.charset = charset
        data, parser = self._engine_input(text, charset, parser_factory)
        is_xml = isinstance(parser, etree.XMLParser)

        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as exc:
            errors = [str(entry) for entry in exc.error_log] or [str(exc)]
            self._report_parser_errors(errors)
            if is_xml:
                raise MarkupLoadError(parser_errors=errors) from exc
            return False

        self._report_parser_errors([str(entry) for entry in parser.error_log])
        if root is None:
            return False
        self.document = root.getroottree()
        return True

    def _report_parser_errors(self, errors: List[str]) -> None:
        if self.config.debug == DEBUG_OFF:
            return
        for error in errors:
            if self.config.strict:
                self.logger.warning("Parser error", extra={"parser_error": error})
            else:
                self.logger.debug("Parser error", extra={"parser_error": error})

    def _after_markup_load(self) -> None:
        if self.is_xhtml:
            self.xpath.register_namespace("html", XHTML_NAMESPACE)

    def _require_loaded(self) -> None:
        if self.state is not LoadState.LOADED:
            raise WrapperStateError(
                f"Document {self.id} is not loaded (state: {self.state.name})"
            )

    # Import

    def import_nodes(
        self, source: NodeSource, source_charset: Optional[str] = None
    ) -> List[Node]:
        """Copy nodes, or the nodes parsed from markup, into this document.

        Args:
            source: A node, an iterable of nodes, or raw markup (``str`` or
                ``bytes``); ``str`` items inside an iterable are text nodes
            source_charset: Charset of raw markup, defaults to this document's

        Returns:
            Independent deep copies owned by this document

        Raises:
            FragmentError: If raw markup cannot be loaded as a fragment
        """
        self._require_loaded()
        if isinstance(source, (str, bytes)):
            fake = self.document_fragment_create(source, source_charset)
            return self.import_nodes(child_nodes(fake.root))
        return [copy_node(node) for node in self._node_list(source)]

    def document_fragment_create(
        self, source: NodeSource, charset: Optional[str] = None
    ) -> "DocumentWrapper":
        """Build a synthetic fragment wrapper in this document's dialect.

        Raises:
            FragmentError: If the synthetic document cannot be built
        """
        fake = DocumentWrapper(config=self.config)
        fake.content_type = self.content_type
        fake.dialect = Dialect(
            is_html=self.is_html, is_xml=self.is_xml, is_xhtml=self.is_xhtml
        )
        charset = charset or self.charset or self.config.default_charset
        logger = self.logger.for_component("importer")

        try:
            if isinstance(source, (str, bytes)):
                if isinstance(source, bytes):
                    source = source.decode(
                        self.resolver.known_charset(charset), errors="replace"
                    )
                loaded = document_fragment_load_markup(fake, charset, source)
            else:
                loaded = document_fragment_load_markup(fake, charset)
                if loaded:
                    for node in self._node_list(source):
                        append_node(fake.root, copy_node(node))
        except MarkupLoadError as exc:
            logger.warning(
                "Fragment markup is not well-formed",
                extra={"parser_errors": exc.parser_errors},
            )
            raise FragmentError() from exc

        if not loaded:
            raise FragmentError()
        fake.state = LoadState.LOADED
        logger.debug("Created synthetic fragment", extra={"fragment_id": fake.id})
        return fake

    @staticmethod
    def _node_list(source: NodeSource) -> List[Node]:
        if isinstance(source, etree._ElementTree):
            return [source.getroot()]
        if isinstance(source, (etree._Element, str)):
            return [source]
        return list(source)

    # Serialization

    def markup(
        self,
        nodes: Optional[Union[Node, etree._ElementTree, Iterable[Node]]] = None,
        inner_markup: bool = False
    ) -> str:
        """Return markup of the whole document or of ``nodes``.

        Args:
            nodes: Node or nodes to serialize; the document when omitted
            inner_markup: Serialize the content of the nodes instead of the
                nodes themselves

        Raises:
            FragmentError: If fragment boundaries cannot be recovered
        """
        self._require_loaded()
        if nodes is not None:
            nodes = None if is_tree(nodes) else self._node_list(nodes)
        if nodes is not None and len(nodes) == 1 and is_tree(nodes[0]):
            nodes = None

        if nodes is None:
            return self._document_markup()

        if self.is_document_fragment and not inner_markup:
            expanded: List[Node] = []
            for node in nodes:
                if node is self.root:
                    expanded.extend(child_nodes(node))
                else:
                    expanded.append(node)
            nodes = expanded

        if self.is_xml and not self.is_xhtml and not inner_markup:
            markup = "".join(node_to_markup(node, "xml") for node in nodes)
        else:
            loop = flatten_inner(nodes) if inner_markup else nodes
            fake = self.document_fragment_create(loop)
            markup = document_fragment_to_markup(fake)
        self.logger.for_component("serializer").debug(
            "Serialized nodes",
            extra={"node_count": len(nodes), "inner_markup": inner_markup},
        )

        if self.is_xhtml:
            markup = markup_fix_xhtml(markup)
        return markup

    def _document_markup(self) -> str:
        if self.is_document_fragment:
            return document_fragment_to_markup(self)

        if self.is_xml:
            markup = self._serialize_xml()
        else:
            markup = etree.tostring(self.document, method="html", encoding="unicode")

        if self.is_xhtml:
            markup = markup_fix_xhtml(markup)
        return markup

    def _serialize_xml(self) -> str:
        charset = self.charset or self.config.default_charset
        try:
            data = etree.tostring(self.document, xml_declaration=True, encoding=charset)
        except LookupError:
            charset = ENGINE_FALLBACK_CHARSET
            data = etree.tostring(self.document, xml_declaration=True, encoding=charset)
        return data.decode(self.resolver.known_charset(charset), errors="replace")
