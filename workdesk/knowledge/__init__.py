# -*- coding: utf-8 -*-
"""Knowledge base filtering shared by the API and the offline client."""

from .filters import KnowledgeFilter, KnowledgeSearch, collect_tags

__all__ = [
    "KnowledgeFilter",
    "KnowledgeSearch",
    "collect_tags",
]
