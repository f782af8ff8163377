"""
Unit tests for CSV column to field matching.
"""

import pytest

from csv_contentstack import matching
from csv_contentstack.flatten import flatten_fields
from csv_contentstack.matching import (
    NO_MATCH,
    apply_overrides,
    build_mappings,
    find_matching_field,
    normalize_text,
    remap,
    text_variations,
)
from csv_contentstack.schema import SKIP, FlattenedField


@pytest.fixture
def fields(article_schema):
    return flatten_fields(article_schema).fields


def _field(uid, display_name, path=None, data_type="text"):
    return FlattenedField(uid=uid, display_name=display_name, data_type=data_type, field_path=path or uid)


# ===================
# NORMALIZATION
# ===================

class TestNormalization:
    """Tests for header normalization and variant generation."""

    def test_normalize_strips_punctuation_and_spaces(self):
        assert normalize_text("  E-mail   Address! ") == "email address"

    def test_variations_include_compact_and_snake_forms(self):
        variants = text_variations("Meta Title")
        assert "meta title" in variants
        assert "metatitle" in variants
        assert "meta_title" in variants

    def test_synonym_expands_to_canonical_key(self):
        assert "title" in text_variations("Name")
        assert "publication date" in text_variations("Published Date")

    def test_canonical_key_expands_to_synonyms(self):
        variants = text_variations("URL")
        assert "link" in variants and "href" in variants

    def test_variations_are_unique(self):
        variants = text_variations("title")
        assert len(variants) == len(set(variants))


# ===================
# FIELD MATCHING
# ===================

class TestFindMatchingField:
    """Tests for the confidence ladder."""

    def test_exact_uid(self, fields):
        match = find_matching_field("age", fields)
        assert match.field.field_path == "age"
        assert match.confidence == 100

    def test_exact_display_name(self, fields):
        match = find_matching_field("Age", fields)
        assert match.field.field_path == "age"
        assert match.confidence == 95

    def test_exact_field_path(self, fields):
        match = find_matching_field("seo.meta_title", fields)
        assert match.field.field_path == "seo.meta_title"
        assert match.confidence == 90

    def test_heuristic_match(self, fields):
        match = find_matching_field("meta title", fields)
        assert match.field.field_path == "seo.meta_title"
        assert match.confidence == matching.HEURISTIC_CONFIDENCE

    def test_synonym_match(self, fields):
        match = find_matching_field("Name", fields)
        assert match.field.field_path == "title"
        assert match.confidence == 80

    def test_exact_beats_earlier_heuristic(self):
        fields = [
            _field("email_address", "Contact Email"),
            _field("work_email", "Email Address"),
        ]
        match = find_matching_field("Email Address", fields)
        assert match.field.uid == "work_email"
        assert match.confidence == 95

    def test_exact_uid_beats_earlier_heuristic(self):
        fields = [
            _field("email_address", "Contact Email"),
            _field("Email Address", "Primary Email"),
        ]
        match = find_matching_field("Email Address", fields)
        assert match.field.display_name == "Primary Email"
        assert match.confidence == 100

    def test_first_heuristic_wins_ties(self):
        fields = [_field("first_name", "First Name"), _field("firstname", "Firstname")]
        match = find_matching_field("First-Name", fields)
        assert match.field.uid == "first_name"

    def test_unrelated_header_is_no_match(self, fields):
        assert find_matching_field("zzz unrelated", fields) == NO_MATCH

    def test_short_header_never_matches_heuristically(self):
        assert find_matching_field("ab", [_field("ab_field", "AB")]) == NO_MATCH

    def test_heuristic_below_floor_is_no_match(self, fields, monkeypatch):
        monkeypatch.setattr(matching, "HEURISTIC_CONFIDENCE", 65)
        result = find_matching_field("meta title", fields)
        assert result.field is None
        assert result.confidence == 0

    def test_no_fields(self):
        assert find_matching_field("Title", []) == NO_MATCH


# ===================
# MAPPINGS
# ===================

class TestBuildMappings:
    """Tests for mapping construction and overrides."""

    def test_one_mapping_per_column(self, fields):
        mappings = build_mappings(["Title", "Age", "Unknown Col"], fields)
        assert [m.csv_column for m in mappings] == ["Title", "Age", "Unknown Col"]
        assert [m.target_field_path for m in mappings] == ["title", "age", SKIP]
        assert mappings[2].skipped

    def test_mapping_copies_field_attributes(self, fields):
        by_col = {m.csv_column: m for m in build_mappings(
            ["Title", "Publish Date", "Category", "Author", "Headline", "Meta Title", "Featured"], fields)}

        assert by_col["Title"].is_required is True
        assert by_col["Publish Date"].field_type == "date"
        assert by_col["Category"].field_type == "select"
        assert [o.value for o in by_col["Category"].select_options] == ["news", "blog"]
        assert by_col["Author"].field_type == "reference"
        assert by_col["Author"].reference_content_type == "person"
        assert by_col["Headline"].target_field_path == "content.hero.headline"
        assert by_col["Headline"].block_uid == "hero"
        assert by_col["Meta Title"].parent_field_uid == "seo"
        assert by_col["Featured"].field_type == "boolean"

    def test_remap_to_other_field(self, fields):
        (m,) = build_mappings(["Unknown Col"], fields)
        m = remap(m, "age", fields)
        assert m.target_field_path == "age"
        assert m.field_type == "number"
        assert m.csv_column == "Unknown Col"

    def test_remap_to_skip_clears_attributes(self, fields):
        (m,) = build_mappings(["Title"], fields)
        m = remap(m, SKIP, fields)
        assert m.skipped
        assert m.is_required is False

    def test_remap_unknown_path(self, fields):
        (m,) = build_mappings(["Title"], fields)
        with pytest.raises(KeyError):
            remap(m, "nope.nothing", fields)

    def test_apply_overrides_only_touches_named_columns(self, fields):
        mappings = build_mappings(["Title", "Unknown Col"], fields)
        out = apply_overrides(mappings, {"Unknown Col": "featured"}, fields)
        assert out[0] == mappings[0]
        assert out[1].target_field_path == "featured"
