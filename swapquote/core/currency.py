"""Currency types: the chain's native asset and ERC-20 tokens."""

from abc import ABC, abstractmethod
from typing import Annotated, Any, Literal

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, Field, field_validator

# Wrapped native token per chain id
WRAPPED_NATIVE_ADDRESSES: dict[int, str] = {
    1: "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    3: "0xc778417E063141139Fce010982780140Aa0cD5Ab",
    4: "0xc778417E063141139Fce010982780140Aa0cD5Ab",
    5: "0xB4FBF271143F4FBf7B91A5ded31805e42b2208d6",
    42: "0xd0A1E359811322d97991E03f863a0C30C2cF029C",
}


class BaseCurrency(BaseModel, ABC):
    """Fields and identity rules shared by every currency.

    Only the concrete ``Token`` and ``NativeCurrency`` can be constructed.
    """

    model_config = {"frozen": True}

    chain_id: int = Field(description="Chain identifier")
    decimals: int = Field(ge=0, le=255, description="Number of decimals")
    symbol: str = Field(description="Ticker symbol")
    name: str | None = Field(default=None, description="Display name")

    @property
    def is_native(self) -> bool:
        return False

    @property
    def is_token(self) -> bool:
        return not self.is_native

    @abstractmethod
    def _identity(self) -> tuple[Any, ...]:
        """Key used for equality and hashing."""

    def equals(self, other: object) -> bool:
        """Identity comparison: (chain, address) for tokens, nativeness otherwise."""
        if not isinstance(other, BaseCurrency):
            return False
        return self._identity() == other._identity()

    def __eq__(self, other: object) -> bool:
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        return self.symbol


class Token(BaseCurrency):
    """ERC-20 token identified by chain and contract address."""

    kind: Literal["token"] = "token"
    address: str = Field(description="Checksummed contract address")

    @field_validator("address")
    @classmethod
    def _checksum(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError(f"Invalid token address: {value}")
        return to_checksum_address(value)

    def _identity(self) -> tuple[Any, ...]:
        return ("token", self.chain_id, self.address)

    @property
    def wrapped(self) -> "Token":
        return self

    def sorts_before(self, other: "Token") -> bool:
        """Token ordering used for pair token0/token1."""
        if self.chain_id != other.chain_id:
            raise ValueError("Tokens on different chains")
        return self.address.lower() < other.address.lower()


class NativeCurrency(BaseCurrency):
    """The chain's native asset (ETH on mainnet)."""

    kind: Literal["native"] = "native"
    decimals: int = Field(default=18, ge=0, le=255)
    symbol: str = "ETH"
    name: str | None = "Ether"

    @classmethod
    def on_chain(cls, chain_id: int) -> "NativeCurrency":
        return cls(chain_id=chain_id)

    @property
    def is_native(self) -> bool:
        return True

    def _identity(self) -> tuple[Any, ...]:
        return ("native", self.chain_id)

    @property
    def wrapped(self) -> Token:
        address = WRAPPED_NATIVE_ADDRESSES.get(self.chain_id)
        if address is None:
            raise ValueError(f"No wrapped native token for chain {self.chain_id}")
        return Token(
            chain_id=self.chain_id,
            address=address,
            decimals=self.decimals,
            symbol=f"W{self.symbol}",
            name=f"Wrapped {self.name or self.symbol}",
        )


Currency = Annotated[NativeCurrency | Token, Field(discriminator="kind")]
