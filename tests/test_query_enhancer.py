"""
Tests for Query Expansion
"""

from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from search.query_enhancer import QUERY_EXPANSIONS, enhance_query


class TestEnhanceQuery:
    """Tests for enhance_query."""

    def test_no_match_returns_query(self):
        assert enhance_query("quarterly budget") == "quarterly budget"

    def test_single_expansion(self):
        assert enhance_query("brand") == "brand brand branding identity logo"

    def test_case_insensitive_match_keeps_original_case(self):
        assert enhance_query("BRAND") == "BRAND brand branding identity logo"

    def test_expansions_follow_table_order(self):
        result = enhance_query("email marketing")
        assert result == (
            "email marketing "
            "marketing campaign advertising promotion "
            "email newsletter mailchimp campaign"
        )

    def test_substring_keys_match(self):
        # "socially" contains "social"
        assert enhance_query("socially").startswith("socially social media")

    def test_every_key_expands(self):
        for key, expansion in QUERY_EXPANSIONS:
            assert expansion in enhance_query(key)

    def test_custom_table(self):
        assert enhance_query("seo tips", expansions=(('seo', 'search ranking'),)) == "seo tips search ranking"
