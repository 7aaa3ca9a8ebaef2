"""Swap form state and its URL query-string representation."""

from collections.abc import Iterable, Mapping

import structlog
from pydantic import BaseModel, Field

from ..core.currency import BaseCurrency, NativeCurrency, Token
from ..core.types import SwapField
from .recipient import checksummed, validated_recipient

logger = structlog.get_logger(__name__)

NATIVE_CURRENCY_ID = "ETH"


class SwapState(BaseModel):
    """What the user typed and selected."""

    model_config = {"frozen": True}

    independent_field: SwapField = Field(default=SwapField.INPUT)
    typed_value: str = Field(default="")
    input_currency_id: str | None = Field(default=None)
    output_currency_id: str | None = Field(default=None)
    recipient: str | None = Field(
        default=None, description="Recipient address or name, None for the account"
    )

    @property
    def is_exact_in(self) -> bool:
        return self.independent_field is SwapField.INPUT

    def switch_currencies(self) -> "SwapState":
        """Swap input and output, keeping the typed amount on the other side."""
        return self.model_copy(
            update={
                "independent_field": SwapField.OUTPUT
                if self.is_exact_in
                else SwapField.INPUT,
                "input_currency_id": self.output_currency_id,
                "output_currency_id": self.input_currency_id,
            }
        )


def _currency_param(value: object) -> str:
    if isinstance(value, str):
        address = checksummed(value)
        if address:
            return address
        if value.upper() == NATIVE_CURRENCY_ID:
            return NATIVE_CURRENCY_ID
    return NATIVE_CURRENCY_ID


def _amount_param(value: object) -> str:
    if not isinstance(value, str):
        return ""
    try:
        float(value)
    except ValueError:
        return ""
    return value


def _field_param(value: object) -> SwapField:
    if isinstance(value, str) and value.lower() == "output":
        return SwapField.OUTPUT
    return SwapField.INPUT


def query_to_swap_state(params: Mapping[str, object]) -> SwapState:
    """Build a swap state from URL query parameters.

    Recognised keys: inputCurrency, outputCurrency, exactAmount, exactField,
    recipient. When both currencies resolve to the same id, the side that was
    not given explicitly is cleared.
    """
    input_id: str | None = _currency_param(params.get("inputCurrency"))
    output_id: str | None = _currency_param(params.get("outputCurrency"))
    if input_id == output_id:
        if isinstance(params.get("outputCurrency"), str):
            input_id = None
        else:
            output_id = None

    return SwapState(
        independent_field=_field_param(params.get("exactField")),
        typed_value=_amount_param(params.get("exactAmount")),
        input_currency_id=input_id,
        output_currency_id=output_id,
        recipient=validated_recipient(params.get("recipient")),
    )


def resolve_currency(
    currency_id: str | None, chain_id: int, tokens: Iterable[Token]
) -> BaseCurrency | None:
    """Look up a currency by id: "ETH" or a token address from the token list."""
    if not currency_id:
        return None
    if currency_id.upper() == NATIVE_CURRENCY_ID:
        return NativeCurrency.on_chain(chain_id)

    address = checksummed(currency_id)
    if address is None:
        return None
    for token in tokens:
        if token.chain_id == chain_id and token.address == address:
            return token

    logger.debug("Unknown currency id", currency_id=currency_id, chain_id=chain_id)
    return None
