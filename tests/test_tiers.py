"""
Tests for tier parsing, validation and splitting.
"""

from decimal import Decimal

import pytest

from deposit_calc.data_models import InterestTier
from deposit_calc.errors import InvalidTierError
from deposit_calc.tiers import DEFAULT_TIERS, parse_tier, parse_tiers, split_amount_by_tiers, validate_tiers


def tier(min_value, max_value, rate):
    return InterestTier(
        None if min_value is None else Decimal(min_value),
        None if max_value is None else Decimal(max_value),
        None if rate is None else Decimal(rate),
    )


class TestSplitAmountByTiers:
    """Partitioning a balance across amount bands"""

    def test_amount_exactly_at_boundary_stays_in_first_tier(self, two_tiers):
        allocations = split_amount_by_tiers(Decimal("1000000.00"), two_tiers)
        assert len(allocations) == 1
        assert allocations[0].amount == Decimal("1000000.00")
        assert allocations[0].rate == Decimal("2.00")

    def test_amount_spills_into_next_tiers(self):
        allocations = split_amount_by_tiers(Decimal("2500000"), DEFAULT_TIERS)
        assert [a.amount for a in allocations] == [
            Decimal("1000000.00"),
            Decimal("1000000.00"),
            Decimal("500000.00"),
        ]
        assert [a.rate for a in allocations] == [Decimal("2.00"), Decimal("1.50"), Decimal("0.50")]
        assert allocations[-1].max is None

    def test_partial_second_tier(self):
        allocations = split_amount_by_tiers(Decimal("1500000"), DEFAULT_TIERS)
        assert [a.amount for a in allocations] == [Decimal("1000000.00"), Decimal("500000.00")]

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_amount_gives_nothing(self, amount):
        assert split_amount_by_tiers(Decimal(amount), DEFAULT_TIERS) == []

    def test_zero_amount_with_any_tiers(self):
        assert split_amount_by_tiers(Decimal(0), [tier("0", None, "5")]) == []

    def test_unsorted_tiers_are_sorted(self):
        shuffled = [DEFAULT_TIERS[2], DEFAULT_TIERS[0], DEFAULT_TIERS[1]]
        assert split_amount_by_tiers(Decimal("2500000"), shuffled) == split_amount_by_tiers(
            Decimal("2500000"), DEFAULT_TIERS
        )

    def test_malformed_tiers_are_skipped(self):
        tiers = [tier(None, "100", "1"), tier("0", None, None), tier("0", None, "2")]
        allocations = split_amount_by_tiers(Decimal("50"), tiers)
        assert len(allocations) == 1
        assert allocations[0].rate == Decimal("2")
        assert allocations[0].amount == Decimal("50")

    def test_amount_below_first_tier_minimum(self):
        assert split_amount_by_tiers(Decimal("0.50"), DEFAULT_TIERS) == []

    @pytest.mark.parametrize(
        "amount",
        ["0.01", "99.99", "100.00", "100.01", "250.00", "500.00", "500.01", "123456789.12"],
    )
    def test_allocations_sum_to_amount(self, amount):
        tiers = [tier("0", "100", "1"), tier("100.01", "500", "2"), tier("500.01", None, "3")]
        allocations = split_amount_by_tiers(Decimal(amount), tiers)
        assert sum(a.amount for a in allocations) == Decimal(amount)
        assert all(a.amount > 0 for a in allocations)


class TestValidateTiers:
    """Strict validation in front of the engine"""

    def test_default_tiers_are_valid(self):
        assert validate_tiers(DEFAULT_TIERS) == DEFAULT_TIERS

    def test_returns_sorted(self):
        shuffled = [DEFAULT_TIERS[1], DEFAULT_TIERS[2], DEFAULT_TIERS[0]]
        assert validate_tiers(shuffled) == DEFAULT_TIERS

    def test_empty_set(self):
        with pytest.raises(InvalidTierError, match="At least one"):
            validate_tiers([])

    def test_missing_min(self):
        with pytest.raises(InvalidTierError, match="minimum"):
            validate_tiers([tier(None, None, "1")])

    def test_missing_rate(self):
        with pytest.raises(InvalidTierError, match="rate"):
            validate_tiers([tier("0", None, None)])

    def test_negative_min(self):
        with pytest.raises(InvalidTierError):
            validate_tiers([tier("-1", None, "1")])

    def test_max_not_above_min(self):
        with pytest.raises(InvalidTierError, match="greater than minimum"):
            validate_tiers([tier("100", "100", "1")])

    @pytest.mark.parametrize("rate", ["-0.5", "100.01"])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(InvalidTierError, match="between 0 and 100"):
            validate_tiers([tier("0", None, rate)])

    def test_overlap(self):
        with pytest.raises(InvalidTierError, match="overlaps"):
            validate_tiers([tier("0", "1000", "1"), tier("1000", None, "2")])

    def test_open_tier_must_be_last(self):
        with pytest.raises(InvalidTierError, match="must be the last"):
            validate_tiers([tier("0", None, "1"), tier("1000", "2000", "2")])

    def test_gaps_are_tolerated(self):
        tiers = [tier("0", "1000", "1"), tier("5000", None, "2")]
        assert validate_tiers(tiers) == tiers

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            validate_tiers([])


class TestParseTier:
    """Building tiers from form-style mappings"""

    def test_empty_max_is_open_ended(self):
        parsed = parse_tier({"min": "1,000,000.01", "max": "", "rate": "0.50"})
        assert parsed.min == Decimal("1000000.01")
        assert parsed.max is None
        assert parsed.is_open_ended
        assert parsed.rate == Decimal("0.50")

    def test_unparsable_fields_become_none(self):
        parsed = parse_tier({"min": "abc", "max": "100", "rate": ""})
        assert parsed.min is None
        assert parsed.rate is None
        assert parsed.max == Decimal("100")

    def test_tier_objects_pass_through(self):
        assert parse_tier(DEFAULT_TIERS[0]) is DEFAULT_TIERS[0]

    @pytest.mark.parametrize("value", ["1:2:3", 5, None, ["1", "2", "3"]])
    def test_non_mapping_is_rejected(self, value):
        with pytest.raises(InvalidTierError):
            parse_tier(value)

    @pytest.mark.parametrize("values", ["1:2:3", 5, {"min": "1", "rate": "2"}])
    def test_tier_list_must_be_a_list(self, values):
        with pytest.raises(InvalidTierError):
            parse_tiers(values)
