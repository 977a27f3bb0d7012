"""Tests for deficit/surplus classification."""

import pytest

from indexbasket.models import PROPORTION_SCALE
from indexbasket.rebalancing.imbalance import DeltaKind, ImbalanceDelta, classify

PCT = PROPORTION_SCALE // 100
TOTAL = 500 * 10**18


class TestClassify:
    def test_partitions_in_asset_order(self):
        imbalance = classify(
            current=[40 * PCT, 35 * PCT, 25 * PCT],
            targets=[50 * PCT, 30 * PCT, 20 * PCT],
            total_value=TOTAL,
        )
        assert imbalance.deficit_indices == (0,)
        assert imbalance.deficit_amounts == (50 * 10**18,)
        assert imbalance.surplus_indices == (1, 2)
        assert imbalance.surplus_amounts == (25 * 10**18, 25 * 10**18)
        assert imbalance.total_deficit == 50 * 10**18
        assert imbalance.total_surplus == 50 * 10**18

    def test_exactly_on_target_is_balanced(self):
        imbalance = classify([60 * PCT, 40 * PCT], [60 * PCT, 40 * PCT], TOTAL)
        assert imbalance.deficit_indices == ()
        assert imbalance.surplus_indices == ()
        assert all(d.kind is DeltaKind.BALANCED for d in imbalance.deltas)
        assert imbalance.total_deficit == 0

    def test_deltas_carry_sign_through_variant(self):
        imbalance = classify([30 * PCT, 70 * PCT], [50 * PCT, 50 * PCT], TOTAL)
        deficit, surplus = imbalance.deltas
        assert deficit == ImbalanceDelta.deficit(100 * 10**18)
        assert surplus == ImbalanceDelta.surplus(100 * 10**18)
        assert deficit.signed == -100 * 10**18
        assert surplus.signed == 100 * 10**18
        assert ImbalanceDelta.balanced().signed == 0

    def test_multiple_deficits_keep_order(self):
        imbalance = classify(
            [10 * PCT, 80 * PCT, 10 * PCT],
            [30 * PCT, 40 * PCT, 30 * PCT],
            TOTAL,
        )
        assert imbalance.deficit_indices == (0, 2)
        assert imbalance.surplus_indices == (1,)

    def test_empty_basket_value_gives_zero_magnitudes(self):
        imbalance = classify([0, 0], [50 * PCT, 50 * PCT], 0)
        assert imbalance.deficit_indices == (0, 1)
        assert imbalance.total_deficit == 0

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValueError):
            classify([PROPORTION_SCALE], [50 * PCT, 50 * PCT], TOTAL)
