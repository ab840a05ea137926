"""Locate the named ``config`` fragments of a composite document.

The composite is a forest of ``config`` elements rather than a single rooted
document, so fragments are found by scanning the text for tags and pairing
each top-level opening tag with its matching close. Only the fragments
themselves are ever handed to a real parser.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .types import Fragment

logger = logging.getLogger(__name__)

FRAGMENT_TAG = "config"
NAME_ATTRIBUTE = "name"

_TAG_PATTERN = re.compile(r"<(/?)" + FRAGMENT_TAG + r"(?=[\s/>])([^>]*)>")
_CLOSE_PATTERN = re.compile(r"</" + FRAGMENT_TAG + r"\s*>")
_NAME_PATTERN = re.compile(r"(?:^|\s)" + NAME_ATTRIBUTE + r"\s*=\s*([\"'])(.*?)\1", re.DOTALL)


def get_destination_name(open_tag: str) -> Optional[str]:
    """Return the ``name`` attribute of an opening tag, or None if absent."""
    match = _NAME_PATTERN.search(open_tag)
    if match is None:
        return None
    return match.group(2)


def _scan(text: str, start: int, fragments: List[Fragment]) -> Optional[re.Match[str]]:
    """Collect balanced fragments from ``start``; return an unclosed opening tag."""
    depth = 0
    opening: Optional[re.Match[str]] = None
    for match in _TAG_PATTERN.finditer(text, start):
        is_close = match.group(1) == "/"
        is_empty = not is_close and match.group(2).rstrip().endswith("/")

        if is_close:
            if depth == 0:
                logger.debug("Ignoring stray closing tag at offset %d", match.start())
                continue
            depth -= 1
            if depth == 0 and opening is not None:
                fragments.append(
                    Fragment(
                        destination_name=get_destination_name(opening.group(0)),
                        raw_text=text[opening.start() : match.end()],
                        inner_text=text[opening.end() : match.start()],
                    )
                )
                opening = None
        elif is_empty:
            if depth == 0:
                fragments.append(
                    Fragment(
                        destination_name=get_destination_name(match.group(0)),
                        raw_text=match.group(0),
                        inner_text="",
                    )
                )
        else:
            if depth == 0:
                opening = match
            depth += 1

    if depth:
        return opening
    return None


def extract_fragments(text: Optional[str]) -> List[Fragment]:
    """Split composite text into its top-level fragments.

    A fragment whose opening tag has no matching close is cut at the first
    closing tag after it and returned with ``complete=False``; scanning then
    resumes behind that tag so later fragments are still found.

    Args:
        text: The composite document.

    Returns:
        Fragments in the order they appear in ``text``.
    """
    fragments: List[Fragment] = []
    if not text:
        return fragments

    start = 0
    while True:
        opening = _scan(text, start, fragments)
        if opening is None:
            return fragments
        close = _CLOSE_PATTERN.search(text, opening.end())
        end = close.end() if close else len(text)
        inner_end = close.start() if close else len(text)
        name = get_destination_name(opening.group(0))
        logger.warning(
            "Fragment %r opened at offset %d has no matching closing tag", name, opening.start()
        )
        fragments.append(
            Fragment(
                destination_name=name,
                raw_text=text[opening.start() : end],
                inner_text=text[opening.end() : inner_end],
                complete=False,
            )
        )
        start = end
