"""
Unit tests for account categories and category rules
"""
import pytest

from src.graph_construction.categories import (
    Category,
    is_dust,
    is_excluded_pair,
    is_hidden,
)
from src.graph_construction.errors import DataIntegrityError, UnknownCategoryError


@pytest.mark.unit
class TestCategoryParse:
    """Tests for Category.parse"""

    @pytest.mark.parametrize('value,expected', [
        ('Exchange', Category.EXCHANGE),
        ('Cex', Category.EXCHANGE),
        ('cex', Category.EXCHANGE),
        ('Defi', Category.DEFI_PROTOCOL),
        ('DeFiProtocol', Category.DEFI_PROTOCOL),
        ('Spammer', Category.SPAM_SUSPECT),
        ('Sns', Category.NETWORK_PARTICIPANT),
        ('snsparticipant', Category.PARTICIPANT_OF_NETWORK_PARTICIPANT),
        ('Suspect', Category.GENERAL_SUSPECT),
        ('  NodeProvider ', Category.NODE_PROVIDER),
    ])
    def test_canonical_and_collector_names(self, value, expected):
        """Test both naming schemes resolve, case-insensitively"""
        assert Category.parse(value) == expected

    def test_category_passes_through(self):
        """Test a Category value is returned unchanged"""
        assert Category.parse(Category.FOUNDATION) is Category.FOUNDATION

    @pytest.mark.parametrize('value', ['Bank', '', None, 3])
    def test_unknown_rejected(self, value):
        """Test unknown categories raise instead of defaulting"""
        with pytest.raises(UnknownCategoryError) as exc:
            Category.parse(value)
        assert exc.value.value == value

    def test_unknown_is_data_integrity_error(self):
        """Test the error belongs to the data integrity family"""
        with pytest.raises(DataIntegrityError):
            Category.parse('Bank')

    def test_short_names_cover_all_categories(self):
        """Test every category has a collector name"""
        assert {c.short_name for c in Category} == {
            'Cex', 'Defi', 'Foundation', 'Identified', 'NodeProvider',
            'Spammer', 'Sns', 'SnsParticipant', 'Suspect',
        }


@pytest.mark.unit
class TestCategoryRules:
    """Tests for hidden, excluded-pair and dust rules"""

    def test_only_defi_is_hidden(self):
        """Test DeFi protocols are the only hidden category"""
        assert [c for c in Category if is_hidden(c)] == [Category.DEFI_PROTOCOL]

    def test_excluded_pairs(self):
        """Test same-category Exchange and Foundation pairs are denied"""
        assert is_excluded_pair(Category.EXCHANGE, Category.EXCHANGE)
        assert is_excluded_pair(Category.FOUNDATION, Category.FOUNDATION)

    def test_mixed_pairs_allowed(self):
        """Test mixed pairs and other same-category pairs are allowed"""
        assert not is_excluded_pair(Category.EXCHANGE, Category.FOUNDATION)
        assert not is_excluded_pair(Category.IDENTIFIED, Category.IDENTIFIED)
        assert not is_excluded_pair(Category.EXCHANGE, None)
        assert not is_excluded_pair(None, None)

    def test_dust_below_threshold(self):
        """Test spam suspect transfers below threshold are dust"""
        assert is_dust(Category.SPAM_SUSPECT, Category.IDENTIFIED, 9_999_999, 10_000_000)
        assert is_dust(Category.IDENTIFIED, Category.SPAM_SUSPECT, 0, 10_000_000)
        assert is_dust(Category.SPAM_SUSPECT, None, 1, 10_000_000)

    def test_dust_at_threshold_kept(self):
        """Test the threshold itself is not dust"""
        assert not is_dust(Category.SPAM_SUSPECT, Category.IDENTIFIED, 10_000_000, 10_000_000)

    def test_small_transfers_without_spam_kept(self):
        """Test small transfers between non-spam accounts are not dust"""
        assert not is_dust(Category.IDENTIFIED, Category.EXCHANGE, 1, 10_000_000)
