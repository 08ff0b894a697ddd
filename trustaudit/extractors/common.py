"""Shared lookups for the signal extractors."""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from ..net import absolute_url

_SKIPPED_TEXT_PARENTS = {"script", "style", "noscript", "template"}
_WHITESPACE_RE = re.compile(r"\s+")


def raw_text(soup: BeautifulSoup) -> str:
    """Visible body text with whitespace collapsed, case preserved."""
    root = soup.body or soup
    parts: list[str] = []
    for node in root.find_all(string=True):
        if isinstance(node, Comment):
            continue
        parent = node.parent
        if parent is not None and parent.name in _SKIPPED_TEXT_PARENTS:
            continue
        parts.append(str(node))
    return _WHITESPACE_RE.sub(" ", " ".join(parts)).strip()


def page_text(soup: BeautifulSoup) -> str:
    return raw_text(soup).lower()


def anchors(soup: BeautifulSoup) -> Iterator[tuple[Tag, str, str]]:
    """Yield ``(tag, lowercased href, lowercased anchor text)`` for every link."""
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href") or "").strip()
        yield anchor, href.lower(), anchor.get_text(" ", strip=True).lower()


def attr(tag: Tag, name: str) -> str:
    value: Any = tag.get(name)
    if isinstance(value, list):
        return " ".join(str(item) for item in value)
    return str(value or "")


def contains_any(text: str, patterns: list[str] | tuple[str, ...]) -> bool:
    return any(pattern in text for pattern in patterns)


def search_any(text: str, patterns: list[re.Pattern[str]]) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def resolve(href: str, page_url: str) -> str:
    """Absolute form of ``href`` when resolvable, otherwise ``href`` itself."""
    return absolute_url(href, page_url) or href


def class_contains(soup: BeautifulSoup, fragment: str) -> bool:
    return soup.select_one(f'[class*="{fragment}"]') is not None
