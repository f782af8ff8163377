#!/usr/bin/env python3
"""Self-test for column matching, value parsing and document merging.

No network required. Validates deterministic behavior of non-API logic.
"""
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from csv_contentstack.flatten import flatten_fields  # type: ignore
from csv_contentstack.matching import find_matching_field  # type: ignore
from csv_contentstack.merge import merge_value  # type: ignore
from csv_contentstack.schema import load_schema  # type: ignore
from csv_contentstack.values import parse_boolean, parse_date, parse_number  # type: ignore


SCHEMA = [
    {"uid": "title", "display_name": "Title", "data_type": "text", "mandatory": True},
    {"uid": "email_address", "display_name": "Contact Email", "data_type": "text"},
    {"uid": "work_email", "display_name": "Email Address", "data_type": "text"},
    {"uid": "content", "display_name": "Content", "data_type": "blocks", "blocks": [
        {"uid": "hero", "title": "Hero", "schema": [
            {"uid": "headline", "display_name": "Headline", "data_type": "text"},
        ]},
    ]},
]


def main() -> int:
    fields = flatten_fields(load_schema(SCHEMA)).fields
    assert [f.field_path for f in fields] == ['title', 'email_address', 'work_email', 'content.hero.headline']

    # exact display name beats an earlier normalized match
    m = find_matching_field('Email Address', fields)
    assert m.field.uid == 'work_email' and m.confidence == 95
    # synonym
    assert find_matching_field('Name', fields).field.uid == 'title'
    # nothing close
    assert find_matching_field('zzz', fields).field is None

    assert parse_number('42') == 42 and parse_number('abc') is None
    assert parse_boolean('TRUE') is True and parse_boolean('yes') is None
    assert parse_date('2024-01-31') == '2024-01-31T00:00:00.000Z'
    assert parse_date('2024-13-40') is None

    doc = merge_value({}, 'A', 'content.hero.headline', block_uid='hero')
    doc = merge_value(doc, 'B', 'seo.meta_title')
    assert doc == {'content': [{'hero': {'headline': 'A'}}], 'seo': {'meta_title': 'B'}}
    print('Self-test ok: matching, value parsing and merging pass basic checks')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
