"""Contracts of the collaborators the engine consumes."""

from typing import Protocol, runtime_checkable

from .amounts import CurrencyAmount, Price
from .currency import BaseCurrency
from .types import FeeContext, Trade, TradeType


@runtime_checkable
class QuoteSource(Protocol):
    """Liquidity source able to quote a trade."""

    async def quote(
        self,
        input_currency: BaseCurrency,
        output_currency: BaseCurrency,
        amount: CurrencyAmount,
        trade_type: TradeType,
        context: FeeContext,
    ) -> Trade | None:
        """Quote a trade for the given amount.

        ``amount`` is denominated in the input currency for EXACT_INPUT and
        in the output currency for EXACT_OUTPUT. Returns None (or raises
        NoRouteError) when the source has no liquidity for the pair.
        """
        ...

    async def native_price(self, currency: BaseCurrency) -> Price | None:
        """Price of one raw unit of ``currency`` in raw native units."""
        ...


class FeeOracle(Protocol):
    """Supplies the current base fee per gas."""

    async def base_fee_per_gas(self) -> int | None:
        """Current base fee per gas in wei, None until first resolved."""
        ...


class BalanceProvider(Protocol):
    """Supplies wallet balances."""

    async def balance_of(
        self, account: str, currency: BaseCurrency
    ) -> CurrencyAmount | None:
        """Balance of ``currency`` held by ``account``."""
        ...


class NameResolver(Protocol):
    """Resolves human-readable names to addresses."""

    async def resolve(self, name: str) -> str | None:
        """Resolve a name, None if unresolvable."""
        ...
