"""Tests for trade price breakdown and summaries."""

from fractions import Fraction

from swapquote.core.amounts import Percent, Price
from swapquote.core.types import TradeType
from swapquote.quotes.breakdown import compute_trade_price_breakdown, summarize_trade

ETHER = 10**18
HALF_PERCENT = Percent.from_bips(50)


def test_single_hop_fee(make_trade, dai, usdc):
    trade = make_trade(dai, usdc, 1000 * ETHER, 1000 * 10**6)

    breakdown = compute_trade_price_breakdown(trade)

    assert breakdown.realized_lp_fee == Percent.from_bips(30)
    assert breakdown.realized_lp_fee_amount.raw == 3 * ETHER
    assert breakdown.price_impact_without_fee is None


def test_multi_hop_fee_compounds(make_trade, dai, usdc, weth):
    trade = make_trade(dai, usdc, 1000 * ETHER, 1000 * 10**6, via=(weth,))

    breakdown = compute_trade_price_breakdown(trade)

    # 1 - 0.997^2
    assert breakdown.realized_lp_fee.as_fraction == Fraction(5991, 1_000_000)


def test_price_impact_excludes_fee(make_trade, dai, usdc):
    trade = make_trade(
        dai, usdc, 1000 * ETHER, 1000 * 10**6, price_impact=Percent.from_bips(100)
    )

    breakdown = compute_trade_price_breakdown(trade)

    assert breakdown.price_impact_without_fee == Percent.from_bips(70)


def test_summarize_exact_input(make_trade, eth, dai):
    trade = make_trade(eth, dai, ETHER, 2000 * ETHER, miner_bribe=10**16)

    summary = summarize_trade(trade, HALF_PERCENT)

    assert summary.label == "Min received"
    assert summary.bound == "1990.04 DAI"
    assert summary.slippage_tolerance == "0.50%"
    assert summary.route == "WETH > DAI"
    assert summary.miner_bribe == "0.01 ETH"
    assert summary.liquidity_provider_fee == "0.003 ETH"
    # 0.01 ETH bribe + 0.3% of 1 ETH LP fee
    assert summary.total_fee_native == "0.013 ETH"
    assert summary.price_impact is None


def test_summarize_exact_output(make_trade, dai, usdc, eth):
    trade = make_trade(
        dai, usdc, 1000 * ETHER, 1000 * 10**6, trade_type=TradeType.EXACT_OUTPUT
    )
    dai_price = Price(base_currency=dai, quote_currency=eth, numerator=1, denominator=2000)

    summary = summarize_trade(trade, HALF_PERCENT, native_price=dai_price)

    assert summary.label == "Max sent"
    assert summary.bound == "1005 DAI"
    assert summary.liquidity_provider_fee == "3 DAI"
    assert summary.miner_bribe is None
    assert summary.total_fee_native is None


def test_summarize_token_fee_in_native(make_trade, dai, usdc, eth):
    trade = make_trade(dai, usdc, 1000 * ETHER, 1000 * 10**6, miner_bribe=10**15)
    dai_price = Price(base_currency=dai, quote_currency=eth, numerator=1, denominator=2000)

    with_price = summarize_trade(trade, HALF_PERCENT, native_price=dai_price)
    without_price = summarize_trade(trade, HALF_PERCENT)

    # 3 DAI LP fee = 0.0015 ETH, plus 0.001 ETH bribe
    assert with_price.total_fee_native == "0.0025 ETH"
    assert without_price.total_fee_native is None
