"""Tests for swap validation verdicts."""

import pytest

from swapquote.core.amounts import CurrencyAmount, Percent
from swapquote.core.errors import InputError
from swapquote.core.types import SwapField, TradeType
from swapquote.swap.recipient import BAD_RECIPIENT_ADDRESSES
from swapquote.swap.state import SwapState
from swapquote.swap.validation import SwapInputs, evaluate, select_trade

ETHER = 10**18
GWEI = 10**9
# 250k gas at 50 gwei
BASE_FEE = 12_500_000_000_000_000


@pytest.fixture
def eth_to_dai(make_trade, eth, dai):
    return make_trade(eth, dai, ETHER, 2000 * ETHER)


@pytest.fixture
def inputs(eth, dai, account, eth_to_dai):
    """Valid exact-input 1 ETH -> DAI swap."""
    return SwapInputs(
        account=account,
        state=SwapState(typed_value="1", input_currency_id="ETH", output_currency_id=dai.address),
        input_currency=eth,
        output_currency=dai,
        quotes={"uniswap": eth_to_dai},
        base_fee_per_gas=50 * GWEI,
        input_balance=CurrencyAmount(currency=eth, raw=2 * ETHER),
        native_balance=CurrencyAmount(currency=eth, raw=2 * ETHER),
    )


def with_state(inputs: SwapInputs, **changes) -> SwapInputs:
    return inputs.model_copy(update={"state": inputs.state.model_copy(update=changes)})


class TestVerdict:
    """Test the happy path and derived amounts."""

    def test_valid_swap(self, inputs, eth_to_dai):
        verdict = evaluate(inputs)

        assert verdict.is_valid
        assert verdict.error is None
        assert verdict.error_message is None
        assert verdict.trade is eth_to_dai
        assert verdict.parsed_amount.raw == ETHER
        assert not verdict.min_amount_error
        assert verdict.required_native_balance is None

    def test_slippage_adjusted_amounts(self, inputs, eth_to_dai):
        amounts = evaluate(inputs).slippage_adjusted_amounts

        assert amounts[SwapField.INPUT] == eth_to_dai.input_amount
        minimum = amounts[SwapField.OUTPUT].raw
        assert minimum * 10_050 <= 2000 * ETHER * 10_000 < (minimum + 1) * 10_050

    def test_evaluate_is_pure(self, inputs):
        assert evaluate(inputs).model_dump() == evaluate(inputs).model_dump()

    def test_quotes_for_other_inputs_are_dropped(self, inputs, make_trade, eth, dai):
        exact_out = make_trade(
            eth, dai, ETHER, 2000 * ETHER, trade_type=TradeType.EXACT_OUTPUT
        )
        stale = inputs.model_copy(update={"quotes": {"uniswap": exact_out}})

        verdict = evaluate(stale)

        assert verdict.trade is None
        assert verdict.error is None

    def test_best_quote_selected(self, inputs, make_trade, eth, dai):
        better = make_trade(eth, dai, ETHER, 2100 * ETHER, source="sushiswap")
        quotes = {**inputs.quotes, "sushiswap": better, "balancer": None}

        trade = select_trade(
            inputs.model_copy(update={"quotes": quotes}),
            CurrencyAmount(currency=eth, raw=ETHER),
        )

        assert trade is better


class TestPrecedence:
    """Test each check and the order they are reported in."""

    def test_connect_wallet(self, inputs):
        verdict = evaluate(inputs.model_copy(update={"account": None}))

        assert verdict.error is InputError.CONNECT_WALLET
        assert verdict.error_message == "Connect Wallet"
        assert not verdict.min_amount_error

    def test_min_flag_computed_without_wallet(self, inputs, eth):
        minimums = {"uniswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=2 * ETHER)}}
        verdict = evaluate(
            inputs.model_copy(update={"account": None, "min_trade_amounts": minimums})
        )

        assert verdict.error is InputError.CONNECT_WALLET
        assert verdict.min_amount_error

    def test_enter_details(self, inputs):
        assert evaluate(with_state(inputs, typed_value="")).error is InputError.ENTER_DETAILS
        assert evaluate(with_state(inputs, typed_value="0")).error is InputError.ENTER_DETAILS
        verdict = evaluate(inputs.model_copy(update={"output_currency": None}))

        assert verdict.error is InputError.ENTER_DETAILS
        assert verdict.error_message == "Swap"

    def test_oversized_amount_is_no_amount(self, inputs):
        verdict = evaluate(with_state(inputs, typed_value="9" * 5000))

        assert verdict.error is InputError.ENTER_DETAILS
        assert verdict.parsed_amount is None

    def test_base_fee_unavailable(self, inputs, eth_to_dai):
        verdict = evaluate(inputs.model_copy(update={"base_fee_per_gas": None}))

        assert verdict.error is InputError.BASE_FEE_UNAVAILABLE
        assert verdict.error_message == "Undefined base fee per gas"
        assert verdict.trade is eth_to_dai

    def test_unresolved_recipient_name(self, inputs):
        verdict = evaluate(with_state(inputs, recipient="vitalik.eth"))

        assert verdict.error is InputError.ENTER_RECIPIENT
        assert verdict.error_message == "Enter a recipient"

    def test_resolved_recipient_name(self, inputs):
        resolved = inputs.model_copy(
            update={"resolved_recipient": "0x" + "cd" * 20}
        )

        assert evaluate(with_state(resolved, recipient="vitalik.eth")).is_valid

    def test_recipient_in_route(self, inputs, dai, weth, eth_to_dai):
        for address in (dai.address, weth.address, eth_to_dai.route.pairs[0].address):
            verdict = evaluate(with_state(inputs, recipient=address))

            assert verdict.error is InputError.INVALID_RECIPIENT
            assert verdict.error_message == "Invalid recipient"

    def test_denylisted_recipient(self, inputs):
        verdict = evaluate(with_state(inputs, recipient=BAD_RECIPIENT_ADDRESSES[0].lower()))

        assert verdict.error is InputError.INVALID_RECIPIENT

    def test_insufficient_native_input(self, inputs, eth):
        verdict = evaluate(
            inputs.model_copy(
                update={"input_balance": CurrencyAmount(currency=eth, raw=ETHER // 2)}
            )
        )

        assert verdict.error is InputError.INSUFFICIENT_BALANCE
        assert verdict.error_message == "Insufficient ETH balance"

    def test_native_input_must_cover_base_fee(self, inputs, eth):
        exact = inputs.model_copy(
            update={"input_balance": CurrencyAmount(currency=eth, raw=ETHER)}
        )
        covered = inputs.model_copy(
            update={"input_balance": CurrencyAmount(currency=eth, raw=ETHER + BASE_FEE)}
        )

        assert evaluate(exact).error is InputError.INSUFFICIENT_BALANCE
        assert evaluate(covered).is_valid

    def test_exact_output_uses_maximum_in(self, inputs, make_trade, eth, dai):
        trade = make_trade(eth, dai, ETHER, 2000 * ETHER, trade_type=TradeType.EXACT_OUTPUT)
        exact_out = with_state(
            inputs.model_copy(update={"quotes": {"uniswap": trade}}),
            independent_field=SwapField.OUTPUT,
            typed_value="2000",
        )
        # max in is 1.005 ETH, plus 0.0125 ETH base fee
        short = exact_out.model_copy(
            update={"input_balance": CurrencyAmount(currency=eth, raw=1_010_000_000_000_000_000)}
        )
        enough = exact_out.model_copy(
            update={"input_balance": CurrencyAmount(currency=eth, raw=1_020_000_000_000_000_000)}
        )

        assert evaluate(short).error is InputError.INSUFFICIENT_BALANCE
        assert evaluate(enough).is_valid

    def test_recipient_checked_before_balance(self, inputs, dai, eth):
        verdict = evaluate(
            with_state(
                inputs.model_copy(
                    update={"input_balance": CurrencyAmount(currency=eth, raw=1)}
                ),
                recipient=dai.address,
            )
        )

        assert verdict.error is InputError.INVALID_RECIPIENT

    def test_unknown_balance_skips_check(self, inputs):
        verdict = evaluate(inputs.model_copy(update={"input_balance": None}))

        assert verdict.is_valid


class TestMinimumAmount:
    """Test the minimum trade amount rule."""

    def test_below_source_minimum(self, inputs, eth):
        minimums = {"uniswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=2 * ETHER)}}
        verdict = evaluate(inputs.model_copy(update={"min_trade_amounts": minimums}))

        assert verdict.error is InputError.MIN_AMOUNT
        assert verdict.error_message == "Min trade amount not met"
        assert verdict.min_amount_error
        assert verdict.min_trade_amounts == minimums

    def test_other_source_minimum_ignored(self, inputs, eth):
        minimums = {
            "uniswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=ETHER // 2)},
            "sushiswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=2 * ETHER)},
        }
        verdict = evaluate(inputs.model_copy(update={"min_trade_amounts": minimums}))

        assert verdict.is_valid
        assert not verdict.min_amount_error

    def test_no_trade_uses_any_source(self, inputs, eth):
        minimums = {
            "uniswap": {TradeType.EXACT_INPUT: None},
            "sushiswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=2 * ETHER)},
        }
        verdict = evaluate(
            inputs.model_copy(update={"quotes": {}, "min_trade_amounts": minimums})
        )

        assert verdict.trade is None
        assert verdict.error is InputError.MIN_AMOUNT

    def test_balance_reported_before_minimum(self, inputs, eth):
        minimums = {"uniswap": {TradeType.EXACT_INPUT: CurrencyAmount(currency=eth, raw=2 * ETHER)}}
        verdict = evaluate(
            inputs.model_copy(
                update={
                    "min_trade_amounts": minimums,
                    "input_balance": CurrencyAmount(currency=eth, raw=ETHER // 2),
                }
            )
        )

        assert verdict.error is InputError.INSUFFICIENT_BALANCE
        assert verdict.min_amount_error


class TestNativeForFees:
    """Test the native balance check for token trades."""

    @pytest.fixture
    def token_inputs(self, inputs, make_trade, dai, usdc, eth):
        trade = make_trade(dai, usdc, 100 * ETHER, 100 * 10**6, miner_bribe=10**16)
        return inputs.model_copy(
            update={
                "state": SwapState(
                    typed_value="100",
                    input_currency_id=dai.address,
                    output_currency_id=usdc.address,
                ),
                "input_currency": dai,
                "output_currency": usdc,
                "quotes": {"uniswap": trade},
                "input_balance": CurrencyAmount(currency=dai, raw=500 * ETHER),
            }
        )

    def test_insufficient_native_for_fees(self, token_inputs, eth):
        # needs 0.01 bribe + 0.0125 base fee
        verdict = evaluate(
            token_inputs.model_copy(
                update={"native_balance": CurrencyAmount(currency=eth, raw=15 * 10**15)}
            )
        )

        assert verdict.error is InputError.INSUFFICIENT_NATIVE_FOR_FEES
        assert verdict.error_message == "Insufficient ETH balance (fees)"
        assert verdict.required_native_balance.raw == 10**16 + BASE_FEE

    def test_enough_native_for_fees(self, token_inputs, eth):
        verdict = evaluate(
            token_inputs.model_copy(
                update={"native_balance": CurrencyAmount(currency=eth, raw=3 * 10**16)}
            )
        )

        assert verdict.is_valid

    def test_native_input_skips_fee_check(self, inputs, eth):
        verdict = evaluate(
            inputs.model_copy(update={"native_balance": CurrencyAmount.zero(eth)})
        )

        assert verdict.is_valid

    def test_custom_slippage(self, token_inputs):
        verdict = evaluate(token_inputs.model_copy(update={"slippage": Percent.from_bips(100)}))

        assert verdict.slippage_adjusted_amounts[SwapField.OUTPUT].raw == 99_009_900
