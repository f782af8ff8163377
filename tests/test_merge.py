"""
Unit tests for placing values into nested entry documents.
"""

import pytest

from csv_contentstack.merge import merge_value


class TestScalarAndNested:
    """Tests for plain and global field paths."""

    def test_scalar(self):
        assert merge_value({}, 5, "age") == {"age": 5}

    def test_scalar_overwrites(self):
        assert merge_value({"age": 5}, 6, "age") == {"age": 6}

    def test_nested_creates_intermediates(self):
        doc = merge_value({}, "Hello", "seo.social.og_image_alt")
        assert doc == {"seo": {"social": {"og_image_alt": "Hello"}}}

    def test_nested_keeps_siblings(self):
        doc = merge_value({"seo": {"meta_title": "A"}}, "B", "seo.meta_description")
        assert doc == {"seo": {"meta_title": "A", "meta_description": "B"}}

    def test_scalar_in_the_way_is_replaced(self):
        doc = merge_value({"seo": "oops"}, "A", "seo.meta_title")
        assert doc == {"seo": {"meta_title": "A"}}

    def test_none_is_a_no_op(self):
        doc = {"age": 5}
        assert merge_value(doc, None, "age") is doc
        assert merge_value(doc, None, "content.hero.headline", block_uid="hero") == {"age": 5}

    def test_input_is_not_mutated(self):
        doc = {"seo": {"meta_title": "A"}}
        merge_value(doc, "B", "seo.meta_title")
        assert doc == {"seo": {"meta_title": "A"}}

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_invalid_path(self, path):
        with pytest.raises(ValueError):
            merge_value({}, 1, path)


class TestModularBlocks:
    """Tests for modular block paths."""

    def test_members_of_one_block_share_an_element(self):
        doc = merge_value({}, "Big news", "content.hero.headline", block_uid="hero")
        doc = merge_value(doc, "Read on", "content.hero.subtitle", block_uid="hero")
        assert doc == {"content": [{"hero": {"headline": "Big news", "subtitle": "Read on"}}]}

    def test_different_blocks_get_separate_elements(self):
        doc = merge_value({}, "Big news", "content.hero.headline", block_uid="hero")
        doc = merge_value(doc, "Said someone", "content.quote.text", block_uid="quote")
        assert doc == {"content": [
            {"hero": {"headline": "Big news"}},
            {"quote": {"text": "Said someone"}},
        ]}

    def test_conflicting_member_overwrites(self):
        doc = merge_value({}, "One", "content.hero.headline", block_uid="hero")
        doc = merge_value(doc, "Two", "content.hero.headline", block_uid="hero")
        assert doc == {"content": [{"hero": {"headline": "Two"}}]}

    def test_non_list_container_is_replaced(self):
        doc = merge_value({"content": "text"}, "A", "content.hero.headline", block_uid="hero")
        assert doc == {"content": [{"hero": {"headline": "A"}}]}

    def test_block_input_is_not_mutated(self):
        doc = merge_value({}, "One", "content.hero.headline", block_uid="hero")
        merge_value(doc, "Two", "content.hero.subtitle", block_uid="hero")
        assert doc == {"content": [{"hero": {"headline": "One"}}]}

    def test_block_inside_global_field(self):
        doc = merge_value({"page": {"slug": "home"}}, "Big news", "page.sections.hero.headline", block_uid="hero")
        doc = merge_value(doc, "Read on", "page.sections.hero.subtitle", block_uid="hero")
        assert doc == {"page": {
            "slug": "home",
            "sections": [{"hero": {"headline": "Big news", "subtitle": "Read on"}}],
        }}

    def test_block_path_needs_three_segments(self):
        with pytest.raises(ValueError):
            merge_value({}, "A", "content.headline", block_uid="hero")
