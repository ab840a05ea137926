"""Markup parsing and canonical serialization."""

from __future__ import annotations

import logging
from typing import Optional, Union

from lxml import etree

from .errors import ParseError

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

Node = Union[etree._Element, etree._ElementTree]


def _secure_parser() -> etree.XMLParser:
    # Input comes from a remote store: no entities, no DTDs, no network.
    return etree.XMLParser(
        resolve_entities=False,
        load_dtd=False,
        dtd_validation=False,
        no_network=True,
        huge_tree=False,
    )


def parse(text: Optional[str]) -> etree._Element:
    """Parse markup text into an element tree.

    Args:
        text: Markup to parse.

    Returns:
        The document's root element.

    Raises:
        ParseError: If the text is empty or not well-formed.
    """
    if text is None or not text.strip():
        raise ParseError("No markup to parse")
    try:
        return etree.fromstring(text.encode("utf-8"), _secure_parser())
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError(f"Malformed markup: {exc}") from exc


def serialize(node: Node, omit_declaration: bool = False) -> str:
    """Serialize an element (or whole tree) without indentation.

    The declaration is written by this function, never by lxml, so the output
    always starts with exactly ``XML_DECLARATION`` when one is requested.
    """
    if isinstance(node, etree._ElementTree):
        output = etree.tostring(node, encoding="unicode", pretty_print=False)
    else:
        output = etree.tostring(node, encoding="unicode", pretty_print=False, with_tail=False)
    if omit_declaration or output.startswith("<?xml"):
        return output
    return XML_DECLARATION + output


def normalize(text: Optional[str]) -> str:
    """Re-parse ``text`` and return its canonical form with a declaration."""
    root = parse(text)
    return serialize(root.getroottree())
