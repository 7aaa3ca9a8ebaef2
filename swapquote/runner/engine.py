"""Swap engine runner: gathers collaborator data and publishes verdicts."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Mapping
from typing import Any, TypeVar

import structlog

from ..config.settings import AppSettings, load_settings
from ..core.amounts import Price, try_parse_amount
from ..core.currency import BaseCurrency, NativeCurrency
from ..core.interfaces import BalanceProvider, FeeOracle, NameResolver, QuoteSource
from ..core.types import (
    FeeContext,
    MinTradeEstimates,
    SwapField,
    TradeType,
    ValidationVerdict,
)
from ..fees.model import estimate_min_trade_amounts
from ..providers.rpc import EvmRpcClient
from ..quotes.aggregator import QuoteAggregator, QuoteRequest
from ..quotes.breakdown import TradeSummary, summarize_trade
from ..quotes.http_source import HttpQuoteSource
from ..swap.recipient import ENS_NAME_REGEX, checksummed, validated_recipient
from ..swap.state import SwapState, resolve_currency
from ..swap.validation import SwapInputs, evaluate

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SwapEngine:
    """Recomputes the swap verdict whenever the form state changes.

    Each refresh snapshots every collaborator value it needs, then evaluates
    the snapshot. A refresh that finishes after a newer one was started
    returns its verdict without publishing it.
    """

    def __init__(
        self,
        settings: AppSettings,
        sources: Mapping[str, QuoteSource],
        fee_oracle: FeeOracle,
        balances: BalanceProvider,
        resolver: NameResolver,
    ) -> None:
        """Initialize swap engine.

        Args:
            settings: Application settings
            sources: Liquidity sources keyed by id, in preference order
            fee_oracle: Base fee supplier
            balances: Wallet balance supplier
            resolver: Recipient name resolver
        """
        self.settings = settings
        self.sources = dict(sources)
        self.fee_oracle = fee_oracle
        self.balances = balances
        self.resolver = resolver
        self.aggregator = QuoteAggregator(self.sources)

        self.verdict: ValidationVerdict | None = None
        self.min_trade_amounts: MinTradeEstimates = {}
        self.native_prices: dict[str, dict[BaseCurrency, Price | None]] = {}
        self._generation = 0

        logger.info(
            "Swap engine initialized",
            chain_id=settings.chain_id,
            sources=list(self.sources),
        )

    async def _safely(self, what: str, call: Awaitable[T]) -> T | None:
        """Await a collaborator call, degrading failures to None."""
        try:
            return await call
        except Exception as e:
            logger.warning(
                "Collaborator call failed",
                call=what,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _none(self) -> None:
        return None

    async def _resolve_recipient(self, recipient: str | None) -> str | None:
        if recipient is None or checksummed(recipient):
            return None
        if not ENS_NAME_REGEX.match(recipient):
            return None
        return await self._safely("resolve", self.resolver.resolve(recipient))

    async def _native_prices(
        self, currencies: list[BaseCurrency]
    ) -> dict[str, dict[BaseCurrency, Price | None]]:
        async def for_source(source: QuoteSource) -> dict[BaseCurrency, Price | None]:
            prices = await asyncio.gather(
                *(
                    self._safely("native_price", source.native_price(currency))
                    for currency in currencies
                )
            )
            return dict(zip(currencies, prices))

        results = await asyncio.gather(
            *(for_source(source) for source in self.sources.values())
        )
        return dict(zip(self.sources, results))

    async def refresh(self, state: SwapState, account: str | None = None) -> ValidationVerdict:
        """Gather inputs for ``state`` and evaluate them.

        Args:
            state: Current swap form state
            account: Connected wallet address, None when disconnected

        Returns:
            Verdict for this refresh (published only if still the latest)
        """
        self._generation += 1
        generation = self._generation
        settings = self.settings

        tokens = settings.token_list()
        input_currency = resolve_currency(state.input_currency_id, settings.chain_id, tokens)
        output_currency = resolve_currency(
            state.output_currency_id, settings.chain_id, tokens
        )
        native = NativeCurrency.on_chain(settings.chain_id)

        base_fee_per_gas, input_balance, native_balance, resolved_recipient = (
            await asyncio.gather(
                self._safely("base_fee_per_gas", self.fee_oracle.base_fee_per_gas()),
                self._safely(
                    "balance_of", self.balances.balance_of(account, input_currency)
                )
                if account and input_currency is not None
                else self._none(),
                self._safely("balance_of", self.balances.balance_of(account, native))
                if account
                else self._none(),
                self._resolve_recipient(state.recipient),
            )
        )

        currencies = [c for c in (input_currency, output_currency) if c is not None]
        native_prices = await self._native_prices(currencies) if currencies else {}
        min_trade_amounts = estimate_min_trade_amounts(
            input_currency,
            output_currency,
            native_prices,
            base_fee_per_gas,
            settings.gas_limit,
            settings.bribe_margin,
            settings.min_trade_margin,
        )

        trade_type = TradeType.EXACT_INPUT if state.is_exact_in else TradeType.EXACT_OUTPUT
        exact_currency = input_currency if state.is_exact_in else output_currency
        amount = try_parse_amount(state.typed_value, exact_currency)

        quotes = {}
        if generation != self._generation:
            # A newer refresh owns the aggregator now
            logger.debug(
                "Skipped quoting for superseded refresh",
                generation=generation,
                latest=self._generation,
            )
        elif amount is not None and input_currency is not None and output_currency is not None:
            request = QuoteRequest(
                input_currency=input_currency,
                output_currency=output_currency,
                amount=amount,
                trade_type=trade_type,
            )
            contexts = {
                source_id: FeeContext(
                    gas_price_to_beat=base_fee_per_gas,
                    bribe_margin=settings.bribe_margin,
                    min_trade_amount=min_trade_amounts.get(source_id, {}).get(trade_type),
                )
                for source_id in self.sources
            }
            self.aggregator.submit(request, contexts)
            quote_set = await self.aggregator.settle(settings.quote_timeout_seconds)
            if quote_set.request is request:
                quotes = quote_set.trades
        else:
            self.aggregator.cancel()

        verdict = evaluate(
            SwapInputs(
                chain_id=settings.chain_id,
                account=account,
                state=state,
                input_currency=input_currency,
                output_currency=output_currency,
                quotes=quotes,
                resolved_recipient=resolved_recipient,
                denylist=tuple(settings.bad_recipient_addresses),
                base_fee_per_gas=base_fee_per_gas,
                eip1559=settings.eip1559,
                gas_limit=settings.gas_limit,
                input_balance=input_balance,
                native_balance=native_balance,
                slippage=settings.slippage,
                hop_threshold=settings.hop_threshold,
                min_trade_amounts=min_trade_amounts,
            )
        )

        if generation != self._generation:
            logger.debug(
                "Discarded stale verdict", generation=generation, latest=self._generation
            )
            return verdict

        self.verdict = verdict
        self.min_trade_amounts = min_trade_amounts
        self.native_prices = native_prices
        logger.info(
            "Published verdict",
            generation=generation,
            error=verdict.error.value if verdict.error else None,
            source=verdict.trade.source if verdict.trade else None,
            min_amount_error=verdict.min_amount_error,
        )
        return verdict

    def summary(self, verdict: ValidationVerdict) -> TradeSummary | None:
        """Display summary of the verdict's trade, if any."""
        trade = verdict.trade
        if trade is None:
            return None
        price = self.native_prices.get(trade.source, {}).get(trade.input_amount.currency)
        return summarize_trade(trade, self.settings.slippage, price)

    async def close(self) -> None:
        """Cancel outstanding quotes and release clients."""
        await self.aggregator.shutdown()
        collaborators = [
            *self.sources.values(),
            self.fee_oracle,
            self.balances,
            self.resolver,
        ]
        closed: set[int] = set()
        for collaborator in collaborators:
            close = getattr(collaborator, "close", None)
            if close is None or id(collaborator) in closed:
                continue
            closed.add(id(collaborator))
            await close()
        logger.info("Swap engine closed")


def build_engine(settings: AppSettings) -> SwapEngine:
    """Assemble an engine from settings."""
    rpc = EvmRpcClient(settings.rpc_url, ens_registry=settings.ens_registry)
    sources: dict[str, QuoteSource] = {
        config.name: HttpQuoteSource(
            name=config.name,
            base_url=config.base_url,
            api_key=config.api_key,
        )
        for config in settings.quote_sources
    }
    return SwapEngine(
        settings, sources, fee_oracle=rpc, balances=rpc, resolver=rpc
    )


def configure_logging(level: str = "INFO") -> None:
    """Send structured logs to stderr so stdout carries only the verdict."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def render_verdict(engine: SwapEngine, verdict: ValidationVerdict) -> dict[str, Any]:
    """JSON-ready view of a verdict and its trade summary."""
    summary = engine.summary(verdict)
    return {
        "verdict": verdict.model_dump(mode="json"),
        "summary": summary.model_dump(mode="json") if summary else None,
    }


async def main(argv: list[str] | None = None) -> None:
    """Quote a swap once and print the verdict."""
    parser = argparse.ArgumentParser(description="Swap quote and validation")
    parser.add_argument(
        "--config", default="configs/dev.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--profile",
        default="dev",
        choices=["dev", "staging", "prod"],
        help="Configuration profile",
    )
    parser.add_argument("--from", dest="input_currency", default="ETH", help="Input currency id")
    parser.add_argument("--to", dest="output_currency", required=True, help="Output currency id")
    parser.add_argument("--amount", required=True, help="Amount typed by the user")
    parser.add_argument(
        "--exact-output",
        action="store_true",
        help="Treat the amount as the desired output",
    )
    parser.add_argument("--account", default=None, help="Wallet address")
    parser.add_argument("--recipient", default=None, help="Recipient address or ENS name")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (logs go to stderr)",
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        settings = load_settings(args.profile, args.config)
        engine = build_engine(settings)

        state = SwapState(
            independent_field=SwapField.OUTPUT if args.exact_output else SwapField.INPUT,
            typed_value=args.amount,
            input_currency_id=args.input_currency,
            output_currency_id=args.output_currency,
            recipient=validated_recipient(args.recipient),
        )
        try:
            verdict = await engine.refresh(state, args.account)
            print(json.dumps(render_verdict(engine, verdict), indent=2))
        finally:
            await engine.close()

    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
