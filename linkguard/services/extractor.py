"""Outbound link extraction from video descriptions."""

import re
from typing import Any, List

URL_PATTERN = re.compile(r"https?://[^\s]+")
TRAILING_PUNCTUATION = ".,;!?)"


def extract_links(text: Any) -> List[str]:
    """
    Find HTTP(S) URLs in free text.

    Trailing sentence punctuation is stripped from each match. Duplicates are
    kept so every occurrence is checked and counted.

    Args:
        text: Description text; anything that is not a string yields no links

    Returns:
        URLs in order of appearance
    """
    if not isinstance(text, str) or not text:
        return []

    links: List[str] = []
    for match in URL_PATTERN.findall(text):
        url = match.rstrip(TRAILING_PUNCTUATION)
        if url:
            links.append(url)
    return links
