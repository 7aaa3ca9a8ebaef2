"""Tests for trade comparison and selection."""

from itertools import permutations

import pytest

from swapquote.core.amounts import ZERO_PERCENT, Percent
from swapquote.core.types import TradeType
from swapquote.quotes.comparator import best_trade, better_trade, within_threshold

AMOUNT_IN = 1000 * 10**18


@pytest.fixture
def quote(make_trade, dai, usdc, weth):
    """Exact-input DAI -> USDC trade with the given output and hop count."""

    def _quote(usdc_out: int, hops: int = 1, source: str = "uniswap"):
        via = (weth,) if hops == 2 else ()
        return make_trade(dai, usdc, AMOUNT_IN, usdc_out * 10**6, via=via, source=source)

    return _quote


class TestBetterTrade:
    """Test the pairwise comparator."""

    def test_missing_trades(self, quote):
        a = quote(1000)

        assert better_trade(None, None) is None
        assert better_trade(a, None) is a
        assert better_trade(None, a) is a

    def test_better_price_wins_outside_threshold(self, quote):
        a = quote(1000, hops=1)
        b = quote(1010, hops=2)

        assert better_trade(a, b, Percent.from_bips(50)) is b
        assert better_trade(b, a, Percent.from_bips(50)) is b

    def test_fewer_hops_win_within_threshold(self, quote):
        # 0.5% better price but one more hop, with a 1% band
        multi_hop = quote(1005, hops=2)
        direct = quote(1000, hops=1)

        assert better_trade(multi_hop, direct, Percent.from_bips(100)) is direct
        assert better_trade(direct, multi_hop, Percent.from_bips(100)) is direct

    def test_threshold_boundary_is_inclusive(self, quote):
        multi_hop = quote(1010, hops=2)
        direct = quote(1000, hops=1)

        assert better_trade(multi_hop, direct, Percent.from_bips(100)) is direct
        assert better_trade(multi_hop, direct, Percent.from_bips(99)) is multi_hop

    def test_tie_keeps_first(self, quote):
        a = quote(1000, source="uniswap")
        b = quote(1001, source="sushiswap")

        assert better_trade(a, b, Percent.from_bips(50)) is a
        assert better_trade(b, a, Percent.from_bips(50)) is b

    def test_zero_threshold_compares_price(self, quote):
        a = quote(1000, hops=1)
        b = quote(1001, hops=2)
        same_price = quote(1000, hops=2)

        assert better_trade(a, b) is b
        assert better_trade(same_price, a, ZERO_PERCENT) is a

    def test_incomparable_trades(self, quote, make_trade, dai, usdc):
        exact_out = make_trade(
            dai, usdc, AMOUNT_IN, 1000 * 10**6, trade_type=TradeType.EXACT_OUTPUT
        )
        reversed_pair = make_trade(usdc, dai, 1000 * 10**6, AMOUNT_IN)

        with pytest.raises(ValueError):
            better_trade(quote(1000), exact_out)
        with pytest.raises(ValueError):
            better_trade(quote(1000), reversed_pair)


class TestBestTrade:
    """Test selection over many candidates."""

    def test_empty(self):
        assert best_trade([]) is None
        assert best_trade([None, None]) is None

    def test_single(self, quote):
        a = quote(1000)

        assert best_trade([None, a]) is a

    def test_order_independent(self, quote):
        candidates = [
            quote(1000, hops=1, source="a"),
            quote(1003, hops=2, source="b"),
            quote(1020, hops=2, source="c"),
        ]

        winners = {
            best_trade(order, Percent.from_bips(50)).source
            for order in permutations(candidates)
        }

        assert winners == {"c"}

    def test_fewest_hops_near_best_price(self, quote):
        candidates = [
            quote(1020, hops=2, source="best_price"),
            quote(1018, hops=1, source="direct"),
            quote(1000, hops=1, source="far"),
        ]

        assert best_trade(candidates, Percent.from_bips(50)).source == "direct"

    def test_agrees_with_pairwise_comparator(self, quote):
        trades = [quote(1000, hops=1), quote(1004, hops=2), quote(1020, hops=2)]
        threshold = Percent.from_bips(50)

        for a, b in permutations(trades, 2):
            assert best_trade([a, b], threshold) is better_trade(a, b, threshold)

    def test_incomparable_candidates(self, quote, make_trade, dai, usdc):
        exact_out = make_trade(
            dai, usdc, AMOUNT_IN, 1000 * 10**6, trade_type=TradeType.EXACT_OUTPUT
        )

        with pytest.raises(ValueError):
            best_trade([quote(1000), exact_out])

    def test_within_threshold(self, quote):
        assert within_threshold(quote(1000), quote(1005), Percent.from_bips(50))
        assert not within_threshold(quote(1000), quote(1006), Percent.from_bips(50))
