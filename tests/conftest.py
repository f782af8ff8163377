"""
Shared test fixtures.

Schemas here mirror the JSON Contentstack returns for a content type.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

import pytest
from typing import Dict, List, Optional

from csv_contentstack.schema import load_schema


# ===================
# SCHEMAS
# ===================

@pytest.fixture
def article_schema_json() -> List[Dict]:
    """Content type with scalars, a modular block, a global field, a select and a reference."""
    return [
        {"uid": "title", "display_name": "Title", "data_type": "text", "mandatory": True},
        {"uid": "age", "display_name": "Age", "data_type": "number", "mandatory": False},
        {"uid": "featured", "display_name": "Featured", "data_type": "boolean"},
        {"uid": "publish_date", "display_name": "Publish Date", "data_type": "isodate"},
        {
            "uid": "category",
            "display_name": "Category",
            "data_type": "text",
            "display_type": "dropdown",
            "enum": {"advanced": True, "choices": [
                {"value": "news", "key": "News"},
                {"value": "blog", "key": "Blog"},
            ]},
        },
        {"uid": "author", "display_name": "Author", "data_type": "reference", "reference_to": ["person"]},
        {
            "uid": "content",
            "display_name": "Content",
            "data_type": "blocks",
            "blocks": [
                {
                    "uid": "hero",
                    "title": "Hero",
                    "schema": [
                        {"uid": "headline", "display_name": "Headline", "data_type": "text"},
                        {"uid": "subtitle", "display_name": "Subtitle", "data_type": "text"},
                    ],
                },
                {
                    "uid": "quote",
                    "title": "Quote",
                    "schema": [
                        {"uid": "text", "display_name": "Quote Text", "data_type": "text"},
                    ],
                },
            ],
        },
        {
            "uid": "seo",
            "display_name": "SEO",
            "data_type": "global_field",
            "reference_to": "seo_meta",
            "schema": [
                {"uid": "meta_title", "display_name": "Meta Title", "data_type": "text"},
                {
                    "uid": "social",
                    "display_name": "Social",
                    "data_type": "global_field",
                    "reference_to": "social_meta",
                    "schema": [
                        {"uid": "og_image_alt", "display_name": "OG Image Alt", "data_type": "text"},
                    ],
                },
            ],
        },
    ]


@pytest.fixture
def article_schema(article_schema_json):
    return load_schema(article_schema_json)


# ===================
# FAKE COLLABORATORS
# ===================

class FakeRepository:
    """In-memory entry repository recording every call."""

    def __init__(self, existing: Optional[Dict[str, Dict]] = None, fail_on: Optional[Dict[str, Exception]] = None):
        self.entries: Dict[str, Dict] = dict(existing or {})
        self.fail_on = fail_on or {}
        self.calls: List[tuple] = []
        self._next = 1

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on:
            raise self.fail_on[op]

    def find_by_title(self, title: str) -> Optional[Dict]:
        self.calls.append(("find_by_title", title))
        self._maybe_fail("find_by_title")
        for uid, entry in self.entries.items():
            if entry.get("title") == title:
                return {"uid": uid, **entry}
        return None

    def create(self, document: Dict) -> str:
        self.calls.append(("create", document))
        self._maybe_fail("create")
        uid = f"blt{self._next:04d}"
        self._next += 1
        self.entries[uid] = dict(document)
        return uid

    def update(self, uid: str, document: Dict) -> None:
        self.calls.append(("update", uid, document))
        self._maybe_fail("update")
        self.entries[uid] = {**self.entries.get(uid, {}), **document}

    def publish(self, uid: str, environment: str) -> None:
        self.calls.append(("publish", uid, environment))
        self._maybe_fail("publish")


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def make_repository():
    return FakeRepository
