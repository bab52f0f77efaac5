"""DOM-style node lists on top of lxml trees.

lxml keeps character data in ``text`` and ``tail`` attributes instead of text
node objects. The helpers here expose an element's content as a flat list in
which elements, comments and processing instructions appear as lxml nodes and
character data appears as plain ``str`` items.
"""

from copy import deepcopy
from typing import Iterable, List, Union
from xml.sax.saxutils import escape

from lxml import etree

Node = Union[etree._Element, str]
TreeHandle = etree._ElementTree


def is_tree(obj: object) -> bool:
    """Check whether ``obj`` is a whole-document handle."""
    return isinstance(obj, etree._ElementTree)


def as_tree(obj: Union[etree._ElementTree, etree._Element]) -> TreeHandle:
    """Normalize an element to the document tree it belongs to."""
    if isinstance(obj, etree._Element):
        return obj.getroottree()
    return obj


def child_nodes(element: etree._Element) -> List[Node]:
    """Return ``[text?, child, tail?, child, tail?, ...]`` for ``element``."""
    nodes: List[Node] = []
    if element.text:
        nodes.append(element.text)
    for child in element:
        nodes.append(child)
        if child.tail:
            nodes.append(child.tail)
    return nodes


def is_element(node: Node) -> bool:
    """Check for a real element, as opposed to text, comments or PIs."""
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def copy_node(node: Node) -> Node:
    """Deep-copy ``node`` without its trailing text."""
    if isinstance(node, str):
        return node
    copied = deepcopy(node)
    copied.tail = None
    return copied


def append_node(parent: etree._Element, node: Node) -> None:
    """Append an element or a piece of character data to ``parent``."""
    if isinstance(node, str):
        if len(parent):
            last = parent[-1]
            last.tail = (last.tail or "") + node
        else:
            parent.text = (parent.text or "") + node
        return
    parent.append(node)


def node_to_markup(node: Node, method: str = "xml") -> str:
    """Serialize a single node, excluding the text that follows it."""
    if isinstance(node, str):
        return escape(node)
    return etree.tostring(node, method=method, encoding="unicode", with_tail=False)


def flatten_inner(nodes: Iterable[Node]) -> List[Node]:
    """Replace every element by its child nodes.

    Nodes that cannot have children (text, comments, processing instructions)
    stand for themselves.
    """
    loop: List[Node] = []
    for node in nodes:
        if is_element(node):
            loop.extend(child_nodes(node))
        else:
            loop.append(node)
    return loop
