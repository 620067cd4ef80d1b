from decimal import Decimal

import pytest

from rego_registry.core.exceptions import ValidationError
from rego_registry.core.models.base import StakeholderType
from rego_registry.rego.splitter import (
    share_of,
    split_generation_amount,
    split_share,
    truncate_to_three_decimals,
)

SHARED_PERCENTAGES = {
    StakeholderType.OWNER: Decimal("60"),
    StakeholderType.NATION: Decimal("30"),
    StakeholderType.LOCAL_GOVERNMENT: Decimal("10"),
}


class TestSplitter:
    def test_truncate_to_three_decimals(self):
        assert truncate_to_three_decimals(Decimal("30.1665")) == Decimal("30.166")
        assert truncate_to_three_decimals(Decimal("10.0559")) == Decimal("10.055")
        assert truncate_to_three_decimals(Decimal("5")) == Decimal("5.000")

    def test_share_of(self):
        assert share_of(Decimal("100.555"), Decimal("30")) == Decimal("30.166")
        assert share_of(Decimal("100.555"), Decimal("0")) == Decimal("0")

    def test_split_with_no_carried_amount(self):
        shares = split_generation_amount(Decimal("100.555"), SHARED_PERCENTAGES, {})

        owner = shares[StakeholderType.OWNER]
        nation = shares[StakeholderType.NATION]
        local_government = shares[StakeholderType.LOCAL_GOVERNMENT]

        assert (owner.allocation, owner.remainder) == (60, Decimal("0.333"))
        assert (nation.allocation, nation.remainder) == (30, Decimal("0.166"))
        assert (local_government.allocation, local_government.remainder) == (
            10,
            Decimal("0.055"),
        )

    def test_split_conserves_truncated_shares(self):
        carried = {
            StakeholderType.OWNER: Decimal("0.9"),
            StakeholderType.NATION: Decimal("0.5"),
            StakeholderType.LOCAL_GOVERNMENT: Decimal("0.999"),
        }
        generation_amount = Decimal("1234.567")

        shares = split_generation_amount(generation_amount, SHARED_PERCENTAGES, carried)

        for stakeholder_type, share in shares.items():
            assert share.remainder >= 0
            assert share.remainder < 1
            assert share.allocation + share.remainder == carried[stakeholder_type] + share_of(
                generation_amount, SHARED_PERCENTAGES[stakeholder_type]
            )

    def test_split_share_rolls_over_accumulated_fraction(self):
        share = split_share(
            StakeholderType.OWNER, Decimal("100.555"), Decimal("60"), Decimal("0.9")
        )

        # 60.333 plus 0.9 carried pays out one extra unit
        assert share.allocation == 61
        assert share.remainder == Decimal("0.233")

    def test_split_share_accumulates_below_one(self):
        share = split_share(
            StakeholderType.NATION, Decimal("100.555"), Decimal("30"), Decimal("0.5")
        )

        assert share.allocation == 30
        assert share.remainder == Decimal("0.666")

    def test_split_share_exact_rollover(self):
        share = split_share(
            StakeholderType.OWNER, Decimal("0.5"), Decimal("100"), Decimal("0.5")
        )

        assert share.allocation == 1
        assert share.remainder == Decimal("0")

    def test_split_zero_amount(self):
        carried = {StakeholderType.OWNER: Decimal("0.4")}

        shares = split_generation_amount(Decimal("0"), SHARED_PERCENTAGES, carried)

        assert all(share.allocation == 0 for share in shares.values())
        assert shares[StakeholderType.OWNER].remainder == Decimal("0.4")
        assert shares[StakeholderType.NATION].remainder == Decimal("0")

    def test_split_share_with_zero_percentage(self):
        share = split_share(
            StakeholderType.LOCAL_GOVERNMENT, Decimal("100.555"), Decimal("0"), Decimal("0")
        )

        assert share.allocation == 0
        assert share.remainder == Decimal("0")

    def test_split_rejects_bad_percentages(self):
        with pytest.raises(ValidationError, match="add up to 100"):
            split_generation_amount(
                Decimal("10"),
                {
                    StakeholderType.OWNER: Decimal("60"),
                    StakeholderType.NATION: Decimal("30"),
                    StakeholderType.LOCAL_GOVERNMENT: Decimal("9.999"),
                },
                {},
            )

        with pytest.raises(ValidationError, match="cannot be negative"):
            split_generation_amount(
                Decimal("10"),
                {
                    StakeholderType.OWNER: Decimal("110"),
                    StakeholderType.NATION: Decimal("-10"),
                    StakeholderType.LOCAL_GOVERNMENT: Decimal("0"),
                },
                {},
            )

        with pytest.raises(ValidationError, match="missing"):
            split_generation_amount(
                Decimal("10"), {StakeholderType.OWNER: Decimal("100")}, {}
            )

    def test_split_rejects_negative_amounts(self):
        with pytest.raises(ValidationError):
            split_generation_amount(Decimal("-1"), SHARED_PERCENTAGES, {})

        with pytest.raises(ValidationError):
            split_share(
                StakeholderType.OWNER, Decimal("10"), Decimal("100"), Decimal("-0.1")
            )
