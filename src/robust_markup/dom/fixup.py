"""Post-processing of serialized XHTML for HTML consumers."""

# Elements HTML consumers refuse to see self-closed
NON_EMPTY_TAGS = ("script", "select", "textarea")


def expand_empty_tag(tag: str, xml: str) -> str:
    """Rewrite every self-closed ``<tag ... />`` as ``<tag ...></tag>``.

    This is a plain text scan: each ``<tag `` is matched with the next ``>``, so
    a ``>`` inside an attribute value ends the tag early. Tags written without
    attributes (``<tag/>``) are left alone.

    Example:
        >>> expand_empty_tag("textarea", '<textarea name="x" />')
        '<textarea name="x"></textarea>'
    """
    opening = f"<{tag} "
    closing = f"></{tag}>"
    index = 0
    while index < len(xml):
        start = xml.find(opening, index)
        if start == -1:
            break
        end = xml.find(">", start)
        if end == -1:
            break
        if xml[end - 1] == "/":
            xml = xml[:end - 1].rstrip() + closing + xml[end + 1:]
        index = start + len(opening)
    return xml


def markup_fix_xhtml(markup: str) -> str:
    """Expand self-closed script, select and textarea elements."""
    for tag in NON_EMPTY_TAGS:
        markup = expand_empty_tag(tag, markup)
    return markup
