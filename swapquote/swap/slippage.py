"""Slippage-adjusted trade bounds."""

from fractions import Fraction

from ..core.amounts import CurrencyAmount, Percent
from ..core.types import SwapField, Trade, TradeType


def _check_tolerance(tolerance: Percent) -> Fraction:
    value = tolerance.as_fraction
    if value < 0:
        raise ValueError("Slippage tolerance must not be negative")
    return value


def minimum_amount_out(trade: Trade, tolerance: Percent) -> CurrencyAmount:
    """Least output the user accepts.

    For exact-input trades this is ``floor(output / (1 + tolerance))``: the
    largest integer not above the exact bound. Exact-output trades fix the
    output, so it is returned unchanged.
    """
    slippage = _check_tolerance(tolerance)
    if trade.trade_type is TradeType.EXACT_OUTPUT:
        return trade.output_amount
    return trade.output_amount.multiply(1 / (1 + slippage))


def maximum_amount_in(trade: Trade, tolerance: Percent) -> CurrencyAmount:
    """Most input the user pays.

    For exact-output trades this is ``ceil(input * (1 + tolerance))``, never
    below the exact bound. Exact-input trades fix the input.
    """
    slippage = _check_tolerance(tolerance)
    if trade.trade_type is TradeType.EXACT_INPUT:
        return trade.input_amount
    return trade.input_amount.multiply(1 + slippage, round_up=True)


def compute_slippage_adjusted_amounts(
    trade: Trade | None, tolerance: Percent | None
) -> dict[SwapField, CurrencyAmount]:
    """Worst-case input and output amounts for the given tolerance."""
    if trade is None or tolerance is None:
        return {}
    return {
        SwapField.INPUT: maximum_amount_in(trade, tolerance),
        SwapField.OUTPUT: minimum_amount_out(trade, tolerance),
    }
