"""Fan-out of quote requests to every configured liquidity source."""

import asyncio
from collections.abc import Mapping

import structlog
from pydantic import BaseModel, Field

from ..core.amounts import CurrencyAmount, amount_fields
from ..core.currency import Currency
from ..core.errors import NoRouteError, StaleResultError
from ..core.interfaces import QuoteSource
from ..core.types import FeeContext, Trade, TradeType

logger = structlog.get_logger(__name__)


class QuoteRequest(BaseModel):
    """The input tuple a set of quotes answers."""

    model_config = {"frozen": True}

    input_currency: Currency
    output_currency: Currency
    amount: CurrencyAmount
    trade_type: TradeType

    def answered_by(self, trade: Trade) -> bool:
        fixed = (
            trade.input_amount
            if self.trade_type is TradeType.EXACT_INPUT
            else trade.output_amount
        )
        return (
            trade.trade_type is self.trade_type
            and trade.input_amount.currency.equals(self.input_currency)
            and trade.output_amount.currency.equals(self.output_currency)
            and fixed == self.amount
        )


class QuoteSet(BaseModel):
    """Snapshot of the quotes resolved so far for one request."""

    model_config = {"frozen": True}

    request: QuoteRequest | None = None
    trades: dict[str, Trade | None] = Field(default_factory=dict)
    pending: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return self.request is not None and not self.pending


class QuoteAggregator:
    """Requests a trade from every source for the current input tuple.

    Each submitted request replaces the previous one. Results are tagged with
    the request object they answer and dropped unless that exact object is
    still current, so a slow answer to an old request is never merged into a
    newer set.
    """

    def __init__(self, sources: Mapping[str, QuoteSource]) -> None:
        """Initialize aggregator.

        Args:
            sources: Liquidity sources keyed by source id, in preference order
        """
        self.sources = dict(sources)
        self._current: QuoteRequest | None = None
        self._tasks: dict[str, asyncio.Task] = {}
        self._snapshot = QuoteSet()

    @property
    def current(self) -> QuoteRequest | None:
        return self._current

    def results(self) -> QuoteSet:
        """Whatever subset has resolved for the current request."""
        return self._snapshot

    def submit(
        self, request: QuoteRequest, contexts: Mapping[str, FeeContext]
    ) -> None:
        """Start quoting ``request`` on every source, superseding older requests.

        Args:
            request: Input tuple to quote
            contexts: Per-source fee context (carries each source's minimum)
        """
        self.cancel()
        self._current = request
        self._snapshot = QuoteSet(request=request, pending=tuple(self.sources))

        for source_id, source in self.sources.items():
            context = contexts.get(source_id, FeeContext())
            self._tasks[source_id] = asyncio.create_task(
                self._quote_one(request, source_id, source, context),
                name=f"quote:{source_id}",
            )

        logger.debug(
            "Submitted quote request",
            amount=amount_fields(request.amount),
            trade_type=request.trade_type.value,
            sources=list(self.sources),
        )

    def cancel(self) -> None:
        """Cancel outstanding requests and forget the current one."""
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        self._tasks = {}
        self._current = None
        self._snapshot = QuoteSet()

    async def shutdown(self) -> None:
        """Cancel outstanding requests and wait for their tasks to unwind."""
        tasks = list(self._tasks.values())
        self.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def settle(self, timeout: float | None = None) -> QuoteSet:
        """Wait for outstanding quotes, optionally bounded by the caller.

        Sources still running after ``timeout`` keep their slot empty in the
        returned snapshot.
        """
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)
        return self._snapshot

    async def _quote_one(
        self,
        request: QuoteRequest,
        source_id: str,
        source: QuoteSource,
        context: FeeContext,
    ) -> None:
        trade: Trade | None = None
        try:
            trade = await source.quote(
                request.input_currency,
                request.output_currency,
                request.amount,
                request.trade_type,
                context,
            )
        except asyncio.CancelledError:
            raise
        except NoRouteError as e:
            logger.debug("No route from source", source=source_id, error=str(e))
        except Exception as e:
            logger.warning("Quote source failed", source=source_id, error=str(e))

        if trade is not None and not request.answered_by(trade):
            logger.warning(
                "Discarding trade that does not answer the request", source=source_id
            )
            trade = None

        try:
            self._record(request, source_id, trade)
        except StaleResultError:
            logger.debug("Discarded stale quote", source=source_id)

    def _record(self, request: QuoteRequest, source_id: str, trade: Trade | None) -> None:
        if request is not self._current:
            raise StaleResultError(f"Quote from {source_id} answers a superseded request")

        snapshot = self._snapshot
        resolved = {**snapshot.trades, source_id: trade}
        self._snapshot = QuoteSet(
            request=request,
            # configured source order, not resolution order
            trades={s: resolved[s] for s in self.sources if s in resolved},
            pending=tuple(s for s in snapshot.pending if s != source_id),
        )
        logger.debug(
            "Recorded quote",
            source=source_id,
            found=trade is not None,
            pending=len(self._snapshot.pending),
        )
