"""Core data types for swap quoting and validation."""

from enum import Enum

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, Field, field_validator, model_validator

from .amounts import CurrencyAmount, Percent, Price
from .currency import Currency, Token
from .errors import InputError


class TradeType(str, Enum):
    """Which side of the trade the user fixed."""

    EXACT_INPUT = "exact_input"
    EXACT_OUTPUT = "exact_output"


class SwapField(str, Enum):
    """Input or output side of the swap form."""

    INPUT = "input"
    OUTPUT = "output"


class Pair(BaseModel):
    """Liquidity pair between two tokens."""

    model_config = {"frozen": True}

    token0: Token = Field(description="First pair token")
    token1: Token = Field(description="Second pair token")
    address: str = Field(description="Pair (liquidity token) address")
    fee_bips: int = Field(default=30, ge=0, lt=10_000, description="LP fee in bips")

    @field_validator("address")
    @classmethod
    def _checksum(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"Invalid pair address: {value}")
        return to_checksum_address(value)

    @model_validator(mode="after")
    def _distinct_tokens(self) -> "Pair":
        if self.token0.equals(self.token1):
            raise ValueError("Pair tokens must differ")
        return self

    def involves(self, token: Token) -> bool:
        return token.equals(self.token0) or token.equals(self.token1)

    def other(self, token: Token) -> Token:
        if token.equals(self.token0):
            return self.token1
        if token.equals(self.token1):
            return self.token0
        raise ValueError(f"Token {token.symbol} not in pair {self.address}")


class Route(BaseModel):
    """Ordered pairs connecting the input currency to the output currency."""

    model_config = {"frozen": True}

    pairs: list[Pair] = Field(min_length=1, description="Pairs in trade order")
    input: Currency = Field(description="Input currency")
    output: Currency = Field(description="Output currency")

    @model_validator(mode="after")
    def _check_path(self) -> "Route":
        path = [self.input.wrapped]
        for pair in self.pairs:
            if not pair.involves(path[-1]):
                raise ValueError(
                    f"Pair {pair.address} does not continue the path at {path[-1].symbol}"
                )
            path.append(pair.other(path[-1]))

        if not path[-1].equals(self.output.wrapped):
            raise ValueError("Route does not end at the output currency")
        if len(set(path)) != len(path):
            raise ValueError("Route path contains a cycle")
        return self

    @property
    def path(self) -> list[Token]:
        tokens = [self.input.wrapped]
        for pair in self.pairs:
            tokens.append(pair.other(tokens[-1]))
        return tokens

    @property
    def hops(self) -> int:
        return len(self.pairs)


class Trade(BaseModel):
    """Immutable result of one quote from one liquidity source."""

    model_config = {"frozen": True}

    route: Route
    trade_type: TradeType
    input_amount: CurrencyAmount
    output_amount: CurrencyAmount
    source: str = Field(description="Liquidity source identifier")
    miner_bribe: CurrencyAmount | None = Field(
        default=None, description="Native amount reserved for the relay/miner"
    )
    price_impact: Percent | None = Field(
        default=None, description="Price impact reported by the source"
    )

    @model_validator(mode="after")
    def _check_amounts(self) -> "Trade":
        if not self.input_amount.currency.equals(self.route.input):
            raise ValueError("Input amount currency does not match route input")
        if not self.output_amount.currency.equals(self.route.output):
            raise ValueError("Output amount currency does not match route output")
        if self.input_amount.raw == 0:
            raise ValueError("Trade input amount must be positive")
        if self.miner_bribe is not None and not self.miner_bribe.currency.is_native:
            raise ValueError("Miner bribe must be denominated in the native currency")
        return self

    @property
    def execution_price(self) -> Price:
        """Output received per unit of input."""
        return Price.from_amounts(self.input_amount, self.output_amount)

    @property
    def hops(self) -> int:
        return self.route.hops


class FeeContext(BaseModel):
    """Fee environment handed to a quote source with each request."""

    model_config = {"frozen": True}

    gas_price_to_beat: int | None = Field(
        default=None, description="Gas price the incentive is sized against (wei)"
    )
    bribe_margin: int = Field(default=0, ge=0, description="Incentive margin percent")
    min_trade_amount: CurrencyAmount | None = Field(
        default=None, description="Minimum tradable amount for this source"
    )


# source id -> trade type -> minimum tradable amount
MinTradeEstimates = dict[str, dict[TradeType, CurrencyAmount | None]]


class ValidationVerdict(BaseModel):
    """Terminal output of one evaluation."""

    model_config = {"frozen": True}

    trade: Trade | None = None
    error: InputError | None = None
    error_message: str | None = None
    min_amount_error: bool = False
    parsed_amount: CurrencyAmount | None = None
    min_trade_amounts: MinTradeEstimates = Field(default_factory=dict)
    slippage_adjusted_amounts: dict[SwapField, CurrencyAmount] = Field(
        default_factory=dict
    )
    required_native_balance: CurrencyAmount | None = None

    @property
    def is_valid(self) -> bool:
        return self.trade is not None and self.error is None
