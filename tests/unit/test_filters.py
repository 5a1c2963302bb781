# -*- coding: utf-8 -*-
"""
Tests for Knowledge Filters
===========================

The same predicate runs on the server list endpoint and on the offline
cache, so these cases pin down both.
"""

from datetime import datetime

import pytest

from workdesk.knowledge import KnowledgeFilter, KnowledgeSearch, collect_tags


ENTRIES = [
    {"id": "1", "title": "VPN outage", "content": "Restart the gateway", "category": "incident",
     "status": "published", "tags": ["network", "vpn"], "created_at": "2024-03-01T10:00:00"},
    {"id": "2", "title": "Deploy checklist", "content": "Run migrations first", "category": "process",
     "status": "draft", "tags": ["deploy"], "created_at": "2024-03-05T10:00:00"},
    {"id": "3", "title": "Old runbook", "content": "Gateway notes", "category": "incident",
     "status": "archived", "tags": ["network"], "created_at": "2024-02-01T10:00:00"},
    {"id": "4", "title": "Reset password", "content": "Use the admin portal", "category": "solution",
     "status": "published", "tags": [], "created_at": "2024-03-10T10:00:00"},
]


def ids(entries):
    return [entry["id"] for entry in entries]


@pytest.mark.unit
class TestKnowledgeFilter:

    def test_default_hides_archived(self):
        assert ids(KnowledgeFilter().apply(ENTRIES)) == ["1", "2", "4"]

    def test_explicit_status_returns_archived(self):
        assert ids(KnowledgeFilter(status="archived").apply(ENTRIES)) == ["3"]

    def test_category(self):
        assert ids(KnowledgeFilter(category="incident").apply(ENTRIES)) == ["1"]

    def test_tag_membership(self):
        assert ids(KnowledgeFilter(tag="network").apply(ENTRIES)) == ["1"]

    def test_search_title_and_content_case_insensitive(self):
        assert ids(KnowledgeFilter(search="GATEWAY").apply(ENTRIES)) == ["1"]
        assert ids(KnowledgeFilter(search="migrations").apply(ENTRIES)) == ["2"]

    def test_combined_filters(self):
        entry_filter = KnowledgeFilter(category="incident", status="archived", search="runbook")
        assert ids(entry_filter.apply(ENTRIES)) == ["3"]

    def test_from_mapping_ignores_blank_and_unknown_keys(self):
        entry_filter = KnowledgeFilter.from_mapping({"category": "", "tag": "vpn", "page": 2})
        assert entry_filter == KnowledgeFilter(tag="vpn")
        assert KnowledgeFilter.from_mapping(None) == KnowledgeFilter()

    def test_to_params_drops_unset(self):
        assert KnowledgeFilter(status="draft", search="x").to_params() == {"status": "draft", "search": "x"}
        assert KnowledgeFilter().to_params() == {}

    def test_apply_returns_copies(self):
        result = KnowledgeFilter().apply(ENTRIES)
        result[0]["title"] = "changed"
        assert ENTRIES[0]["title"] == "VPN outage"


@pytest.mark.unit
class TestKnowledgeSearch:

    def test_unset_status_means_published(self):
        assert ids(KnowledgeSearch().apply(ENTRIES)) == ["1", "4"]

    def test_query_matches_tags(self):
        assert ids(KnowledgeSearch(query="vpn").apply(ENTRIES)) == ["1"]

    def test_categories_and_tags_any_of(self):
        search = KnowledgeSearch(categories=["incident", "solution"], tags=["vpn", "deploy"])
        assert ids(search.apply(ENTRIES)) == ["1"]

    def test_date_range(self):
        search = KnowledgeSearch(date_from=datetime(2024, 3, 2), date_to=datetime(2024, 3, 31))
        assert ids(search.apply(ENTRIES)) == ["4"]

    def test_explicit_status(self):
        assert ids(KnowledgeSearch(status="draft").apply(ENTRIES)) == ["2"]


@pytest.mark.unit
def test_collect_tags_first_seen_order():
    assert collect_tags(ENTRIES) == ["network", "vpn", "deploy"]
    assert collect_tags([{"tags": None}, {}]) == []
