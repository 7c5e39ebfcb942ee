"""
nodeport_router.scraping
========================
Tree-walking helpers over a BeautifulSoup document, plus the nonce
extractor that works on raw markup.

The router pages are small and not always well-formed, so the helpers walk
``Tag.children`` themselves instead of relying on CSS selectors:

* ``find_element_by_id`` / ``find_element_by_attr`` – first match, depth first
* ``find_table_by_class`` – first ``<table>`` carrying every given class token
* ``find_elements`` – all elements of a tag; matches are not searched further
* ``get_text_content`` – cell text, with ``<input name=…>`` harvested as text
"""

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from .config import NONCE_RE

_BS4_PARSER = "lxml"


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, _BS4_PARSER)


def extract_nonce(html: str) -> str:
    """
    Return the value of the hidden ``nonce`` input, or ``""``.

    A regex over the raw text, not a tree walk: the field can appear before
    the rest of the document is well-formed.
    """
    m = NONCE_RE.search(html)
    return m.group(1) if m else ""


def _attr_value(tag: Tag, attribute: str) -> str:
    val = tag.get(attribute)
    # bs4 returns multi-valued attributes (class, rel, …) as lists
    if isinstance(val, list):
        return " ".join(val)
    return val or ""


def find_element_by_attr(node: Tag, attribute: str, value: str) -> "Tag | None":
    if isinstance(node, Tag) and node.has_attr(attribute) and _attr_value(node, attribute) == value:
        return node
    for child in node.children:
        if isinstance(child, Tag):
            found = find_element_by_attr(child, attribute, value)
            if found is not None:
                return found
    return None


def find_element_by_id(node: Tag, element_id: str) -> "Tag | None":
    return find_element_by_attr(node, "id", element_id)


def find_table_by_class(node: Tag, class_name: str) -> "Tag | None":
    """First ``<table>`` whose class list contains every token of *class_name*."""
    wanted = class_name.split()
    if isinstance(node, Tag) and node.name == "table":
        classes = node.get("class") or []
        if all(token in classes for token in wanted):
            return node
    for child in node.children:
        if isinstance(child, Tag):
            found = find_table_by_class(child, class_name)
            if found is not None:
                return found
    return None


def find_elements(node: Tag, tag_name: str) -> list:
    """
    All descendants named *tag_name*, in document order.

    A matched element's own children are not searched: rule tables are not
    nested, so a ``<tr>`` never contains the next ``<tr>``.
    """
    results = []

    def _walk(current: Tag) -> None:
        for child in current.children:
            if not isinstance(child, Tag):
                continue
            if child.name == tag_name:
                results.append(child)
            else:
                _walk(child)

    _walk(node)
    return results


def get_text_content(node) -> str:
    """
    Concatenated text of *node* and its descendants.

    ``<input>`` elements contribute their ``name`` attribute instead: the
    delete button of a listing row is ``<input name="…" value="Delete">``
    and its name is the only handle on that rule.
    """
    if isinstance(node, NavigableString):
        # comments and doctypes are markup, not text
        return "" if isinstance(node, PreformattedString) else str(node)
    parts = []
    for child in node.children:
        if isinstance(child, Tag) and child.name == "input":
            parts.append(child.get("name", ""))
        elif isinstance(child, (Tag, NavigableString)):
            parts.append(get_text_content(child))
    return "".join(parts)
