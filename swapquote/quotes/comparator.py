"""Trade selection across liquidity sources."""

from collections.abc import Iterable
from fractions import Fraction
from functools import reduce

import structlog

from ..core.amounts import ZERO_PERCENT, Percent
from ..core.types import Trade

logger = structlog.get_logger(__name__)


def _price(trade: Trade) -> Fraction:
    return trade.execution_price.as_fraction


def _require_comparable(a: Trade, b: Trade) -> None:
    if (
        a.trade_type != b.trade_type
        or not a.input_amount.currency.equals(b.input_amount.currency)
        or not a.output_amount.currency.equals(b.output_amount.currency)
    ):
        raise ValueError("Trades are not comparable")


def within_threshold(a: Trade, b: Trade, hop_threshold: Percent) -> bool:
    """True if neither price beats the other by more than ``hop_threshold``."""
    high, low = max(_price(a), _price(b)), min(_price(a), _price(b))
    return high <= low * (1 + hop_threshold.as_fraction)


def better_trade(
    a: Trade | None, b: Trade | None, hop_threshold: Percent = ZERO_PERCENT
) -> Trade | None:
    """Return the better of two optional trades.

    A trade beats a missing one. Between two trades the better execution
    price wins unless both prices are within ``hop_threshold`` of each other,
    in which case the trade with fewer hops wins. Remaining ties keep ``a``.

    Raises:
        ValueError: If the trades differ in type or currencies
    """
    if a is None:
        return b
    if b is None:
        return a
    _require_comparable(a, b)

    if within_threshold(a, b, hop_threshold):
        return b if b.hops < a.hops else a
    return b if _price(b) > _price(a) else a


def best_trade(
    candidates: Iterable[Trade | None], hop_threshold: Percent = ZERO_PERCENT
) -> Trade | None:
    """Fold any number of optional trades down to the best one with ``better_trade``.

    The first fold, with no threshold, finds the best execution price. The
    second folds the trades within ``hop_threshold`` of that anchor; those are
    all within the threshold of each other, so ``better_trade`` picks the
    fewest hops and the winner does not depend on the order sources resolved
    in. Equal candidates keep the earliest one.
    """
    trades = [trade for trade in candidates if trade is not None]
    if not trades:
        return None

    anchor = reduce(better_trade, trades)
    eligible = [t for t in trades if within_threshold(anchor, t, hop_threshold)]
    winner = reduce(lambda x, y: better_trade(x, y, hop_threshold), eligible)

    logger.debug(
        "Selected best trade",
        source=winner.source,
        hops=winner.hops,
        candidates=len(trades),
        eligible=len(eligible),
    )
    return winner
