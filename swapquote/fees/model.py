"""Base fee, incentive and minimum-trade sizing."""

from collections.abc import Mapping

import structlog

from ..core.amounts import CurrencyAmount, Price, ceil_div
from ..core.currency import BaseCurrency, NativeCurrency
from ..core.types import MinTradeEstimates, Trade, TradeType

logger = structlog.get_logger(__name__)


def base_fee_in_native(
    base_fee_per_gas: int, gas_limit: int, chain_id: int
) -> CurrencyAmount:
    """Native cost of inclusion: gas_limit * base_fee_per_gas."""
    return CurrencyAmount(
        currency=NativeCurrency.on_chain(chain_id), raw=gas_limit * base_fee_per_gas
    )


def estimate_incentive(gas_price: int, gas_limit: int, bribe_margin: int) -> int:
    """Incentive in wei for a gas price plus a percent margin (rounded up)."""
    return ceil_div(gas_price * gas_limit * (100 + bribe_margin), 100)


def min_native_trade_value(
    gas_price: int, gas_limit: int, bribe_margin: int, min_trade_margin: int
) -> int:
    """Smallest native value whose incentive is at most min_trade_margin percent of it."""
    if min_trade_margin <= 0:
        raise ValueError("min_trade_margin must be positive")
    incentive = estimate_incentive(gas_price, gas_limit, bribe_margin)
    return ceil_div(incentive * 100, min_trade_margin)


def _threshold(
    currency: BaseCurrency, price: Price | None, native_value: int
) -> CurrencyAmount | None:
    if currency.is_native:
        return CurrencyAmount(currency=currency, raw=native_value)
    if price is None or price.numerator == 0:
        return None
    if not price.base_currency.equals(currency) or not price.quote_currency.is_native:
        logger.warning(
            "Ignoring native price for another currency",
            currency=currency.symbol,
            base=price.base_currency.symbol,
        )
        return None
    # native per unit -> units needed to reach native_value
    raw = ceil_div(native_value * price.denominator, price.numerator)
    return CurrencyAmount(currency=currency, raw=raw)


def estimate_min_trade_amounts(
    input_currency: BaseCurrency | None,
    output_currency: BaseCurrency | None,
    native_prices: Mapping[str, Mapping[BaseCurrency, Price | None]],
    gas_price: int | None,
    gas_limit: int,
    bribe_margin: int,
    min_trade_margin: int,
) -> MinTradeEstimates:
    """Minimum tradable input/output amounts per liquidity source.

    Args:
        input_currency: Currency being sold
        output_currency: Currency being bought
        native_prices: source id -> currency -> native price of that currency
        gas_price: Gas price the incentive is sized against (wei)
        gas_limit: Gas limit of a swap
        bribe_margin: User incentive margin percent
        min_trade_margin: Maximum share (percent) of a trade the incentive may take

    Returns:
        Mapping of source id to EXACT_INPUT (input currency) and EXACT_OUTPUT
        (output currency) thresholds; empty when the fee environment is unknown
    """
    if input_currency is None or output_currency is None or not gas_price:
        return {}

    native_value = min_native_trade_value(
        gas_price, gas_limit, bribe_margin, min_trade_margin
    )
    estimates: MinTradeEstimates = {}
    for source, prices in native_prices.items():
        estimates[source] = {
            TradeType.EXACT_INPUT: _threshold(
                input_currency, prices.get(input_currency), native_value
            ),
            TradeType.EXACT_OUTPUT: _threshold(
                output_currency, prices.get(output_currency), native_value
            ),
        }

    logger.debug(
        "Estimated minimum trade amounts",
        native_value=native_value,
        sources=list(estimates),
    )
    return estimates


def is_native_trade(trade: Trade | None) -> bool | None:
    """True if either leg is the native currency, None without a trade."""
    if trade is None:
        return None
    return trade.input_amount.currency.is_native or trade.output_amount.currency.is_native


def is_native_out_trade(trade: Trade | None) -> bool | None:
    """True if the trade pays out the native currency, None without a trade."""
    if trade is None:
        return None
    return trade.output_amount.currency.is_native


def required_native_balance(
    trade: Trade | None, base_fee: CurrencyAmount | None, eip1559: bool
) -> CurrencyAmount | None:
    """Native balance the wallet must hold on top of the traded amount.

    Native-input trades return None: their base fee is added to the required
    input instead. Native-output trades pay the base fee out of the trade
    except under EIP-1559, where it must be withheld from the wallet.
    Token to token trades need both the base fee and the incentive.
    """
    if trade is None or trade.input_amount.currency.is_native:
        return None

    fee = base_fee
    if is_native_out_trade(trade) and not eip1559:
        fee = None

    incentive = trade.miner_bribe
    if incentive is None:
        return fee
    if fee is None:
        return incentive
    return incentive.add(fee)
