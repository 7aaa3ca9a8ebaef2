"""Quote source backed by a JSON quote API."""

from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.amounts import CurrencyAmount, Percent, Price
from ..core.currency import BaseCurrency, NativeCurrency, Token
from ..core.errors import NoRouteError
from ..core.interfaces import QuoteSource
from ..core.types import FeeContext, Pair, Route, Trade, TradeType

logger = structlog.get_logger(__name__)

NATIVE_ID = "ETH"

_TRADE_TYPE_PARAM = {
    TradeType.EXACT_INPUT: "exactIn",
    TradeType.EXACT_OUTPUT: "exactOut",
}


def currency_param(currency: BaseCurrency) -> str:
    """API identifier of a currency: its address, or ETH for the native asset."""
    if currency.is_native:
        return NATIVE_ID
    return currency.address


def build_quote_params(
    input_currency: BaseCurrency,
    output_currency: BaseCurrency,
    amount: CurrencyAmount,
    trade_type: TradeType,
    context: FeeContext,
) -> dict[str, Any]:
    """Build query parameters for the quote endpoint.

    Args:
        input_currency: Currency being sold
        output_currency: Currency being bought
        amount: Fixed amount in smallest units
        trade_type: Which side is fixed
        context: Fee environment for sizing the incentive

    Returns:
        Dictionary of query parameters
    """
    params: dict[str, Any] = {
        "chainId": input_currency.chain_id,
        "tokenIn": currency_param(input_currency),
        "tokenOut": currency_param(output_currency),
        "amount": str(amount.raw),
        "tradeType": _TRADE_TYPE_PARAM[trade_type],
        "bribeMargin": context.bribe_margin,
    }
    if context.gas_price_to_beat is not None:
        params["gasPriceToBeat"] = str(context.gas_price_to_beat)
    return params


def _token(data: dict[str, Any], chain_id: int) -> Token:
    return Token(
        chain_id=chain_id,
        address=data["address"],
        decimals=int(data["decimals"]),
        symbol=data.get("symbol", "?"),
        name=data.get("name"),
    )


def map_quote_response(
    data: dict[str, Any],
    source: str,
    input_currency: BaseCurrency,
    output_currency: BaseCurrency,
    trade_type: TradeType,
) -> Trade:
    """Map a quote API response to a Trade.

    Raises:
        NoRouteError: If the response carries no route
        KeyError, ValueError: If the response is malformed
    """
    hops = data.get("route") or []
    if not hops:
        raise NoRouteError(source)

    chain_id = input_currency.chain_id
    pairs = [
        Pair(
            token0=_token(hop["token0"], chain_id),
            token1=_token(hop["token1"], chain_id),
            address=hop["address"],
            fee_bips=int(hop.get("feeBips", 30)),
        )
        for hop in hops
    ]

    miner_bribe = None
    if data.get("minerBribe") is not None:
        miner_bribe = CurrencyAmount.from_raw_amount(
            NativeCurrency.on_chain(chain_id), str(data["minerBribe"])
        )

    price_impact = None
    if data.get("priceImpactBps") is not None:
        price_impact = Percent.from_bips(int(data["priceImpactBps"]))

    return Trade(
        route=Route(pairs=pairs, input=input_currency, output=output_currency),
        trade_type=trade_type,
        input_amount=CurrencyAmount.from_raw_amount(
            input_currency, str(data["amountIn"])
        ),
        output_amount=CurrencyAmount.from_raw_amount(
            output_currency, str(data["amountOut"])
        ),
        source=source,
        miner_bribe=miner_bribe,
        price_impact=price_impact,
    )


class HttpQuoteSource(QuoteSource):
    """Liquidity source that quotes through an HTTP API."""

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str | None = None,
        session: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize HTTP quote source.

        Args:
            name: Source identifier reported on trades
            base_url: Quote API base URL
            api_key: Optional API key sent as a header
            session: Optional httpx client session
            timeout: Request timeout in seconds
        """
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._session = session or httpx.AsyncClient(timeout=timeout)
        self._owns_session = session is None

        self.retry_config = AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )

    async def close(self) -> None:
        if self._owns_session:
            await self._session.aclose()

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any] | None:
        """GET a JSON object; None on 404."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"x-api-key": self.api_key} if self.api_key else None

        async for attempt in self.retry_config:
            with attempt:
                response = await self._session.get(url, params=params, headers=headers)
                if response.status_code == 404:
                    return None
                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    logger.error(
                        "Quote API error",
                        source=self.name,
                        path=path,
                        status_code=e.response.status_code,
                        response_text=e.response.text,
                    )
                    raise
                data = response.json()
                return data if isinstance(data, dict) else None
        return None

    async def quote(
        self,
        input_currency: BaseCurrency,
        output_currency: BaseCurrency,
        amount: CurrencyAmount,
        trade_type: TradeType,
        context: FeeContext,
    ) -> Trade | None:
        """Quote a trade, skipping amounts below this source's minimum."""
        minimum = context.min_trade_amount
        if (
            minimum is not None
            and minimum.currency.equals(amount.currency)
            and amount < minimum
        ):
            logger.debug(
                "Amount below source minimum",
                source=self.name,
                amount=amount.to_exact(),
                minimum=minimum.to_exact(),
            )
            return None

        params = build_quote_params(
            input_currency, output_currency, amount, trade_type, context
        )
        logger.info(
            "Requesting quote",
            source=self.name,
            token_in=params["tokenIn"],
            token_out=params["tokenOut"],
            amount=params["amount"],
            trade_type=params["tradeType"],
        )

        data = await self._get_json("quote", params)
        if data is None:
            raise NoRouteError(self.name)

        trade = map_quote_response(
            data, self.name, input_currency, output_currency, trade_type
        )
        logger.info(
            "Quote received",
            source=self.name,
            amount_in=trade.input_amount.to_exact(),
            amount_out=trade.output_amount.to_exact(),
            hops=trade.hops,
        )
        return trade

    async def native_price(self, currency: BaseCurrency) -> Price | None:
        """Native price of ``currency`` from the price endpoint."""
        native = NativeCurrency.on_chain(currency.chain_id)
        if currency.is_native:
            return Price(base_currency=native, quote_currency=native, numerator=1, denominator=1)

        try:
            data = await self._get_json(
                "price", {"chainId": currency.chain_id, "token": currency.address}
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Native price lookup failed", source=self.name, error=str(e)
            )
            return None

        ratio = (data or {}).get("nativePerToken")
        if not isinstance(ratio, dict):
            return None
        try:
            return Price(
                base_currency=currency,
                quote_currency=native,
                numerator=int(ratio["numerator"]),
                denominator=int(ratio["denominator"]),
            )
        except (KeyError, ValueError) as e:
            logger.warning("Malformed native price", source=self.name, error=str(e))
            return None
