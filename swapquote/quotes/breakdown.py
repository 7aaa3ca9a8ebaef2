"""Fee and price-impact breakdown of a selected trade."""

from fractions import Fraction

from pydantic import BaseModel, Field

from ..core.amounts import CurrencyAmount, Percent, Price
from ..core.types import Trade, TradeType
from ..swap.slippage import maximum_amount_in, minimum_amount_out

BASE_FEE_DENOMINATOR = 10_000


class PriceBreakdown(BaseModel):
    """LP fee and price impact of a trade."""

    model_config = {"frozen": True}

    realized_lp_fee: Percent
    realized_lp_fee_amount: CurrencyAmount
    price_impact_without_fee: Percent | None = None


class TradeSummary(BaseModel):
    """Display figures for the trade details panel."""

    model_config = {"frozen": True}

    label: str = Field(description="'Min received' or 'Max sent'")
    bound: str = Field(description="Slippage bound with symbol")
    slippage_tolerance: str
    route: str
    liquidity_provider_fee: str = Field(description="Realized LP fee in the input currency")
    miner_bribe: str | None = None
    total_fee_native: str | None = None
    price_impact: str | None = None


def compute_trade_price_breakdown(trade: Trade) -> PriceBreakdown:
    """Realized LP fee across all hops and the price impact excluding it.

    The realized fee is ``1 - prod(1 - fee_i)`` over the route's pairs.
    """
    kept = Fraction(1)
    for pair in trade.route.pairs:
        kept *= 1 - Fraction(pair.fee_bips, BASE_FEE_DENOMINATOR)
    realized = 1 - kept

    impact = None
    if trade.price_impact is not None:
        impact = Percent.from_fraction(trade.price_impact.as_fraction - realized)

    return PriceBreakdown(
        realized_lp_fee=Percent.from_fraction(realized),
        realized_lp_fee_amount=trade.input_amount.multiply(realized),
        price_impact_without_fee=impact,
    )


def summarize_trade(
    trade: Trade, tolerance: Percent, native_price: Price | None = None
) -> TradeSummary:
    """Summarize a trade for display.

    Args:
        trade: Selected trade
        tolerance: User slippage tolerance
        native_price: Native price of the input currency, used to express the
            LP fee in the native currency

    Returns:
        TradeSummary with human-readable figures
    """
    if trade.trade_type is TradeType.EXACT_INPUT:
        label = "Min received"
        bound = minimum_amount_out(trade, tolerance)
    else:
        label = "Max sent"
        bound = maximum_amount_in(trade, tolerance)

    breakdown = compute_trade_price_breakdown(trade)

    lp_fee_native: CurrencyAmount | None = None
    if trade.input_amount.currency.is_native:
        lp_fee_native = breakdown.realized_lp_fee_amount
    elif native_price is not None:
        lp_fee_native = native_price.quote(breakdown.realized_lp_fee_amount)

    total_fee = None
    if trade.miner_bribe is not None and lp_fee_native is not None:
        total = trade.miner_bribe.raw + lp_fee_native.raw
        total_fee = CurrencyAmount(currency=trade.miner_bribe.currency, raw=total)

    return TradeSummary(
        label=label,
        bound=f"{bound.to_significant(6)} {bound.currency.symbol}",
        slippage_tolerance=f"{tolerance.to_fixed(2)}%",
        route=" > ".join(token.symbol for token in trade.route.path),
        liquidity_provider_fee=(
            f"{breakdown.realized_lp_fee_amount.to_significant(6)} "
            f"{breakdown.realized_lp_fee_amount.currency.symbol}"
        ),
        miner_bribe=f"{trade.miner_bribe.to_significant(6)} {trade.miner_bribe.currency.symbol}"
        if trade.miner_bribe is not None
        else None,
        total_fee_native=f"{total_fee.to_significant(6)} {total_fee.currency.symbol}"
        if total_fee is not None
        else None,
        price_impact=f"{breakdown.price_impact_without_fee.to_fixed(2)}%"
        if breakdown.price_impact_without_fee is not None
        else None,
    )
