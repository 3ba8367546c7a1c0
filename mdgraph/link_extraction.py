"""Lexical extraction of wiki-style and markdown-style links.

This is a best-effort scan, not a markdown parser: nested brackets, code
spans and other pathological markup may under- or over-match.
"""
from __future__ import annotations

import re

from mdgraph.models import RawLink

# [[Target]], [[Target|Alias]], [[Target#Heading]]
_WIKILINK_PATTERN = re.compile(r"\[\[(.*?)\]\]")
# [text](target)
_STD_LINK_PATTERN = re.compile(r"\[.*?\]\((.*?)\)")


def _strip_fragment(target: str) -> str:
    return target.split("#", 1)[0]


def wiki_target(inner: str) -> str:
    """Return the target of a wikilink body, or "" when there is none."""
    target = inner.split("|", 1)[0].strip()
    return _strip_fragment(target)


def std_target(raw: str) -> str:
    """Return the local target of a markdown link, or "" if it should be skipped."""
    target = (raw or "").strip()
    if target.startswith("http") or target.startswith("#"):
        return ""
    return _strip_fragment(target)


def extract_links(text: str) -> list[RawLink]:
    """Extract links from document text, in order of occurrence."""
    found: list[tuple[int, RawLink]] = []

    for match in _WIKILINK_PATTERN.finditer(text):
        target = wiki_target(match.group(1))
        if target:
            found.append((match.start(), RawLink(kind="wiki", target=target)))

    for match in _STD_LINK_PATTERN.finditer(text):
        target = std_target(match.group(1))
        if target:
            found.append((match.start(), RawLink(kind="std", target=target)))

    found.sort(key=lambda item: item[0])
    return [link for _, link in found]
