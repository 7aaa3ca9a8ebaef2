"""Swap validation: one ordered verdict from a snapshot of all inputs."""

from collections.abc import Callable, Iterator

import structlog
from pydantic import BaseModel, Field

from ..core.amounts import CurrencyAmount, Percent, try_parse_amount
from ..core.currency import BaseCurrency, Currency
from ..core.errors import InputError
from ..core.types import (
    MinTradeEstimates,
    SwapField,
    Trade,
    TradeType,
    ValidationVerdict,
)
from ..fees.model import base_fee_in_native, required_native_balance
from ..quotes.comparator import best_trade
from .recipient import BAD_RECIPIENT_ADDRESSES, checksummed, involves_address
from .slippage import compute_slippage_adjusted_amounts
from .state import SwapState

logger = structlog.get_logger(__name__)

DEFAULT_GAS_LIMIT = 250_000


class SwapInputs(BaseModel):
    """Immutable snapshot of everything a verdict depends on."""

    model_config = {"frozen": True}

    chain_id: int = Field(default=1)
    account: str | None = Field(default=None, description="Connected wallet address")
    state: SwapState = Field(default_factory=SwapState)
    input_currency: Currency | None = None
    output_currency: Currency | None = None
    quotes: dict[str, Trade | None] = Field(
        default_factory=dict, description="Trade per source, in configured order"
    )
    resolved_recipient: str | None = Field(
        default=None, description="Address the recipient name resolved to"
    )
    denylist: tuple[str, ...] = BAD_RECIPIENT_ADDRESSES
    base_fee_per_gas: int | None = None
    eip1559: bool = True
    gas_limit: int = DEFAULT_GAS_LIMIT
    input_balance: CurrencyAmount | None = None
    native_balance: CurrencyAmount | None = None
    slippage: Percent = Field(default_factory=lambda: Percent.from_bips(50))
    hop_threshold: Percent = Field(default_factory=lambda: Percent.from_bips(50))
    min_trade_amounts: MinTradeEstimates = Field(default_factory=dict)

    @property
    def trade_type(self) -> TradeType:
        if self.state.is_exact_in:
            return TradeType.EXACT_INPUT
        return TradeType.EXACT_OUTPUT


class _Context(BaseModel):
    """Values derived once per evaluation and shared by the checks."""

    model_config = {"frozen": True}

    inputs: SwapInputs
    parsed_amount: CurrencyAmount | None
    trade: Trade | None
    slippage_adjusted: dict[SwapField, CurrencyAmount]
    base_fee: CurrencyAmount | None
    required_native: CurrencyAmount | None
    min_amount_error: bool


def _answers(trade: Trade, inputs: SwapInputs) -> bool:
    return (
        trade.trade_type is inputs.trade_type
        and inputs.input_currency is not None
        and inputs.output_currency is not None
        and trade.input_amount.currency.equals(inputs.input_currency)
        and trade.output_amount.currency.equals(inputs.output_currency)
    )


def select_trade(inputs: SwapInputs, parsed_amount: CurrencyAmount | None) -> Trade | None:
    """Best trade among the quotes that answer the current inputs."""
    if parsed_amount is None:
        return None
    candidates = []
    for source, trade in inputs.quotes.items():
        if trade is None:
            continue
        if not _answers(trade, inputs):
            logger.debug("Dropping quote for other inputs", source=source)
            continue
        candidates.append(trade)
    return best_trade(candidates, inputs.hop_threshold)


def _below_minimum(
    parsed_amount: CurrencyAmount | None,
    trade: Trade | None,
    min_trade_amounts: MinTradeEstimates,
    trade_type: TradeType,
) -> bool:
    if parsed_amount is None:
        return False

    if trade is not None:
        thresholds = [min_trade_amounts.get(trade.source, {}).get(trade_type)]
    else:
        thresholds = [m.get(trade_type) for m in min_trade_amounts.values()]

    return any(
        threshold is not None
        and threshold.currency.equals(parsed_amount.currency)
        and threshold > parsed_amount
        for threshold in thresholds
    )


def _recipient(inputs: SwapInputs) -> str | None:
    if inputs.state.recipient is None:
        return checksummed(inputs.account)
    return checksummed(inputs.state.recipient) or checksummed(inputs.resolved_recipient)


def _covers(balance: CurrencyAmount | None, required: CurrencyAmount | None) -> bool:
    if balance is None or required is None:
        return True
    if not balance.currency.equals(required.currency):
        logger.warning(
            "Balance currency does not match requirement",
            balance=balance.currency.symbol,
            required=required.currency.symbol,
        )
        return True
    return balance >= required


Check = Callable[[_Context], tuple[InputError, str | None] | None]


def _check_wallet(ctx: _Context) -> tuple[InputError, str | None] | None:
    if not ctx.inputs.account:
        return InputError.CONNECT_WALLET, None
    return None


def _check_details(ctx: _Context) -> tuple[InputError, str | None] | None:
    inputs = ctx.inputs
    if (
        ctx.parsed_amount is None
        or inputs.input_currency is None
        or inputs.output_currency is None
    ):
        return InputError.ENTER_DETAILS, None
    return None


def _check_base_fee(ctx: _Context) -> tuple[InputError, str | None] | None:
    if ctx.inputs.base_fee_per_gas is None:
        return InputError.BASE_FEE_UNAVAILABLE, None
    return None


def _check_recipient(ctx: _Context) -> tuple[InputError, str | None] | None:
    to = _recipient(ctx.inputs)
    if to is None:
        return InputError.ENTER_RECIPIENT, None
    denylist = {checksummed(entry) for entry in ctx.inputs.denylist}
    if to in denylist or (ctx.trade is not None and involves_address(ctx.trade, to)):
        return InputError.INVALID_RECIPIENT, None
    return None


def _required_input(ctx: _Context) -> CurrencyAmount | None:
    amount_in = ctx.slippage_adjusted.get(SwapField.INPUT)
    if amount_in is None:
        return None
    if ctx.base_fee is not None and amount_in.currency.is_native:
        return CurrencyAmount(
            currency=amount_in.currency, raw=amount_in.raw + ctx.base_fee.raw
        )
    return amount_in


def _check_balance(ctx: _Context) -> tuple[InputError, str | None] | None:
    required = _required_input(ctx)
    if not _covers(ctx.inputs.input_balance, required):
        return InputError.INSUFFICIENT_BALANCE, required.currency.symbol
    return None


def _check_min_amount(ctx: _Context) -> tuple[InputError, str | None] | None:
    if ctx.min_amount_error:
        return InputError.MIN_AMOUNT, None
    return None


def _check_native_for_fees(ctx: _Context) -> tuple[InputError, str | None] | None:
    balance = ctx.inputs.native_balance
    if not _covers(balance, ctx.required_native):
        return InputError.INSUFFICIENT_NATIVE_FOR_FEES, balance.currency.symbol
    return None


# Precedence order: the first failing check wins
CHECKS: tuple[Check, ...] = (
    _check_wallet,
    _check_details,
    _check_base_fee,
    _check_recipient,
    _check_balance,
    _check_min_amount,
    _check_native_for_fees,
)


def _failures(ctx: _Context) -> Iterator[tuple[InputError, str | None]]:
    for check in CHECKS:
        result = check(ctx)
        if result is not None:
            yield result


def evaluate(inputs: SwapInputs) -> ValidationVerdict:
    """Compute the swap verdict for one snapshot of inputs.

    Pure: the same inputs always yield the same verdict. Only the first
    failing check is reported, while ``min_amount_error`` is always computed.
    """
    exact_currency: BaseCurrency | None = (
        inputs.input_currency if inputs.state.is_exact_in else inputs.output_currency
    )
    parsed_amount = try_parse_amount(inputs.state.typed_value, exact_currency)
    trade = select_trade(inputs, parsed_amount)

    base_fee = None
    if inputs.base_fee_per_gas is not None:
        base_fee = base_fee_in_native(
            inputs.base_fee_per_gas, inputs.gas_limit, inputs.chain_id
        )

    ctx = _Context(
        inputs=inputs,
        parsed_amount=parsed_amount,
        trade=trade,
        slippage_adjusted=compute_slippage_adjusted_amounts(trade, inputs.slippage),
        base_fee=base_fee,
        required_native=required_native_balance(trade, base_fee, inputs.eip1559),
        min_amount_error=_below_minimum(
            parsed_amount, trade, inputs.min_trade_amounts, inputs.trade_type
        ),
    )

    error, symbol = next(_failures(ctx), (None, None))

    verdict = ValidationVerdict(
        trade=trade,
        error=error,
        error_message=error.message(symbol) if error else None,
        min_amount_error=ctx.min_amount_error,
        parsed_amount=parsed_amount,
        min_trade_amounts=inputs.min_trade_amounts,
        slippage_adjusted_amounts=ctx.slippage_adjusted,
        required_native_balance=ctx.required_native,
    )

    logger.debug(
        "Evaluated swap",
        error=error.value if error else None,
        source=trade.source if trade else None,
        min_amount_error=ctx.min_amount_error,
    )
    return verdict
