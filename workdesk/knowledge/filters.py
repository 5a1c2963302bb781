# -*- coding: utf-8 -*-
"""
Knowledge Filters
=================

One predicate for knowledge-entry listing, shared by the API list endpoint
and the offline client's cache fallback so both always agree.

Rules:
- category: exact match when given
- status: exact match when given, otherwise archived entries are hidden
- tag: membership in the entry's tags when given
- search: case-insensitive substring of title or content when given
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

ARCHIVED = "archived"
PUBLISHED = "published"


def _contains(haystack: Any, needle: str) -> bool:
    return needle in str(haystack or "").lower()


@dataclass
class KnowledgeFilter:
    """Filter used by GET /knowledge and by the offline cache"""
    category: Optional[str] = None
    status: Optional[str] = None
    tag: Optional[str] = None
    search: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "KnowledgeFilter":
        """Builds a filter from query params or a dict, ignoring unknown keys"""
        data = data or {}
        return cls(
            category=data.get("category") or None,
            status=data.get("status") or None,
            tag=data.get("tag") or None,
            search=data.get("search") or None,
        )

    def matches(self, entry: Mapping[str, Any]) -> bool:
        if self.category and entry.get("category") != self.category:
            return False

        if self.status:
            if entry.get("status") != self.status:
                return False
        elif entry.get("status") == ARCHIVED:
            return False

        if self.tag and self.tag not in (entry.get("tags") or []):
            return False

        if self.search:
            needle = self.search.lower()
            if not (_contains(entry.get("title"), needle) or _contains(entry.get("content"), needle)):
                return False

        return True

    def apply(self, entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Returns the matching entries, preserving order"""
        return [dict(entry) for entry in entries if self.matches(entry)]

    def to_params(self) -> Dict[str, str]:
        """Query string parameters for the remote list call"""
        return {key: value for key, value in asdict(self).items() if value}


@dataclass
class KnowledgeSearch:
    """
    Advanced search (POST /knowledge/search).

    Unlike the list filter, an unset status means published entries only.
    """
    query: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    status: Optional[str] = None

    def matches(self, entry: Mapping[str, Any]) -> bool:
        if entry.get("status") != (self.status or PUBLISHED):
            return False

        if self.categories and entry.get("category") not in self.categories:
            return False

        if self.tags and not set(self.tags) & set(entry.get("tags") or []):
            return False

        created_at = entry.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if self.date_from and (created_at is None or created_at < self.date_from):
            return False
        if self.date_to and (created_at is None or created_at > self.date_to):
            return False

        if self.query:
            needle = self.query.lower()
            tags_text = " ".join(entry.get("tags") or [])
            if not any(_contains(value, needle) for value in (entry.get("title"), entry.get("content"), tags_text)):
                return False

        return True

    def apply(self, entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [dict(entry) for entry in entries if self.matches(entry)]


def collect_tags(entries: Iterable[Mapping[str, Any]]) -> List[str]:
    """Unique tags across entries, in first-seen order"""
    seen: Dict[str, None] = {}
    for entry in entries:
        tags = entry.get("tags")
        if isinstance(tags, list):
            for tag in tags:
                seen.setdefault(tag, None)
    return list(seen)
