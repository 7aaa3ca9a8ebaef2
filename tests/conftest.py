"""Shared fixtures for swap quote tests."""

from itertools import count

import pytest
from eth_utils import to_checksum_address

from swapquote.core.amounts import CurrencyAmount, Percent
from swapquote.core.currency import NativeCurrency, Token
from swapquote.core.types import Pair, Route, Trade, TradeType

CHAIN_ID = 1
DAI_ADDRESS = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
ACCOUNT = to_checksum_address("0x" + "ab" * 20)

_pair_addresses = count(0x1000)


def build_pair(token_a: Token, token_b: Token, fee_bips: int = 30) -> Pair:
    return Pair(
        token0=token_a,
        token1=token_b,
        address=f"0x{next(_pair_addresses):040x}",
        fee_bips=fee_bips,
    )


@pytest.fixture
def eth() -> NativeCurrency:
    return NativeCurrency.on_chain(CHAIN_ID)


@pytest.fixture
def weth(eth) -> Token:
    return eth.wrapped


@pytest.fixture
def dai() -> Token:
    return Token(chain_id=CHAIN_ID, address=DAI_ADDRESS, decimals=18, symbol="DAI")


@pytest.fixture
def usdc() -> Token:
    return Token(chain_id=CHAIN_ID, address=USDC_ADDRESS, decimals=6, symbol="USDC")


@pytest.fixture
def account() -> str:
    return ACCOUNT


@pytest.fixture
def make_trade():
    """Factory for trades along input -> via... -> output."""

    def _make(
        input_currency,
        output_currency,
        amount_in: int,
        amount_out: int,
        via=(),
        trade_type: TradeType = TradeType.EXACT_INPUT,
        source: str = "uniswap",
        miner_bribe: int | None = None,
        fee_bips: int = 30,
        price_impact: Percent | None = None,
    ) -> Trade:
        path = [input_currency.wrapped, *via, output_currency.wrapped]
        pairs = [build_pair(a, b, fee_bips) for a, b in zip(path, path[1:])]
        bribe = None
        if miner_bribe is not None:
            bribe = CurrencyAmount(
                currency=NativeCurrency.on_chain(CHAIN_ID), raw=miner_bribe
            )
        return Trade(
            route=Route(pairs=pairs, input=input_currency, output=output_currency),
            trade_type=trade_type,
            input_amount=CurrencyAmount(currency=input_currency, raw=amount_in),
            output_amount=CurrencyAmount(currency=output_currency, raw=amount_out),
            source=source,
            miner_bribe=bribe,
            price_impact=price_impact,
        )

    return _make


@pytest.fixture
def make_pair():
    return build_pair
