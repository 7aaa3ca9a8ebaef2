"""Exact numeric primitives: currency amounts, percents and prices.

All money math happens on Python ints and ``fractions.Fraction``. ``Decimal``
is only used to render values for display.
"""

import re
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext
from fractions import Fraction
from typing import Any

import structlog
from pydantic import BaseModel, Field

from .currency import BaseCurrency, Currency
from .errors import CurrencyMismatchError, ParseError

logger = structlog.get_logger(__name__)

BIPS_BASE = 10_000

_AMOUNT_RE = re.compile(r"^(\d*)(?:\.(\d*))?$")


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward positive infinity."""
    return -(-numerator // denominator)


def _render(value: Fraction, significant: int, rounding: str) -> str:
    with localcontext() as ctx:
        ctx.prec = significant
        ctx.rounding = rounding
        result = Decimal(value.numerator) / Decimal(value.denominator)
    return _plain(result)


def _render_fixed(value: Fraction, places: int, rounding: str) -> str:
    whole_digits = len(str(abs(value.numerator) // value.denominator))
    with localcontext() as ctx:
        ctx.prec = whole_digits + places + 2
        ctx.rounding = rounding
        result = (Decimal(value.numerator) / Decimal(value.denominator)).quantize(
            Decimal(1).scaleb(-places)
        )
    return f"{result:f}"


def _plain(value: Decimal) -> str:
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


class Percent(BaseModel):
    """Exact rational percentage, e.g. Percent(50, 10000) is 0.5%."""

    model_config = {"frozen": True}

    numerator: int
    denominator: int = Field(gt=0)

    @classmethod
    def from_bips(cls, bips: int) -> "Percent":
        return cls(numerator=bips, denominator=BIPS_BASE)

    @classmethod
    def from_fraction(cls, value: Fraction) -> "Percent":
        return cls(numerator=value.numerator, denominator=value.denominator)

    @property
    def as_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    def add(self, other: "Percent") -> "Percent":
        return Percent.from_fraction(self.as_fraction + other.as_fraction)

    def subtract(self, other: "Percent") -> "Percent":
        return Percent.from_fraction(self.as_fraction - other.as_fraction)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Percent):
            return NotImplemented
        return self.as_fraction == other.as_fraction

    def __hash__(self) -> int:
        return hash(self.as_fraction)

    def __lt__(self, other: "Percent") -> bool:
        return self.as_fraction < other.as_fraction

    def __le__(self, other: "Percent") -> bool:
        return self.as_fraction <= other.as_fraction

    def __gt__(self, other: "Percent") -> bool:
        return self.as_fraction > other.as_fraction

    def __ge__(self, other: "Percent") -> bool:
        return self.as_fraction >= other.as_fraction

    def to_significant(self, significant: int = 5) -> str:
        return _render(self.as_fraction * 100, significant, ROUND_HALF_UP)

    def to_fixed(self, places: int = 2) -> str:
        return _render_fixed(self.as_fraction * 100, places, ROUND_HALF_UP)

    def __str__(self) -> str:
        return f"{self.to_significant()}%"


ZERO_PERCENT = Percent(numerator=0, denominator=1)
ONE_HUNDRED_PERCENT = Percent(numerator=1, denominator=1)


class CurrencyAmount(BaseModel):
    """Non-negative amount of a currency in its smallest unit."""

    model_config = {"frozen": True}

    currency: Currency
    raw: int = Field(ge=0, description="Amount in smallest units")

    @classmethod
    def from_raw_amount(
        cls, currency: BaseCurrency, raw: int | str
    ) -> "CurrencyAmount":
        """Build an amount from a raw integer or integer string.

        Raises:
            ParseError: If a string is not a non-negative integer
        """
        if isinstance(raw, str):
            if not raw.isdigit():
                raise ParseError(raw, "not a non-negative integer")
            raw = int(raw)
        return cls(currency=currency, raw=raw)

    @classmethod
    def zero(cls, currency: BaseCurrency) -> "CurrencyAmount":
        return cls(currency=currency, raw=0)

    @property
    def as_fraction(self) -> Fraction:
        """Human-scale value (raw divided by 10**decimals)."""
        return Fraction(self.raw, 10**self.currency.decimals)

    def _require_same(self, other: "CurrencyAmount") -> None:
        if not self.currency.equals(other.currency):
            raise CurrencyMismatchError(str(self.currency), str(other.currency))

    def add(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._require_same(other)
        return CurrencyAmount(currency=self.currency, raw=self.raw + other.raw)

    def subtract(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._require_same(other)
        if other.raw > self.raw:
            raise ValueError("Amount subtraction would be negative")
        return CurrencyAmount(currency=self.currency, raw=self.raw - other.raw)

    def multiply(self, factor: Fraction, round_up: bool = False) -> "CurrencyAmount":
        """Scale by an exact fraction, rounding down unless round_up is set."""
        product = self.raw * factor
        if round_up:
            raw = ceil_div(product.numerator, product.denominator)
        else:
            raw = product.numerator // product.denominator
        return CurrencyAmount(currency=self.currency, raw=raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CurrencyAmount):
            return NotImplemented
        return self.currency.equals(other.currency) and self.raw == other.raw

    def __hash__(self) -> int:
        return hash((self.currency, self.raw))

    def __lt__(self, other: "CurrencyAmount") -> bool:
        self._require_same(other)
        return self.raw < other.raw

    def __le__(self, other: "CurrencyAmount") -> bool:
        self._require_same(other)
        return self.raw <= other.raw

    def __gt__(self, other: "CurrencyAmount") -> bool:
        self._require_same(other)
        return self.raw > other.raw

    def __ge__(self, other: "CurrencyAmount") -> bool:
        self._require_same(other)
        return self.raw >= other.raw

    def to_exact(self) -> str:
        """Exact decimal string without trailing zeros."""
        decimals = self.currency.decimals
        if decimals == 0:
            return str(self.raw)
        whole, frac = divmod(self.raw, 10**decimals)
        frac_text = str(frac).rjust(decimals, "0").rstrip("0")
        return f"{whole}.{frac_text}" if frac_text else str(whole)

    def to_significant(self, significant: int = 6) -> str:
        if self.raw == 0:
            return "0"
        return _render(self.as_fraction, significant, ROUND_DOWN)

    def to_fixed(self, places: int | None = None) -> str:
        if places is None:
            places = self.currency.decimals
        if places > self.currency.decimals:
            raise ValueError("More places than currency decimals")
        return _render_fixed(self.as_fraction, places, ROUND_DOWN)

    def __str__(self) -> str:
        return f"{self.to_exact()} {self.currency.symbol}"


class Price(BaseModel):
    """Exchange rate in raw units: ``numerator`` quote units per ``denominator`` base units."""

    model_config = {"frozen": True}

    base_currency: Currency
    quote_currency: Currency
    numerator: int = Field(ge=0)
    denominator: int = Field(gt=0)

    @classmethod
    def from_amounts(
        cls, base_amount: CurrencyAmount, quote_amount: CurrencyAmount
    ) -> "Price":
        if base_amount.raw == 0:
            raise ValueError("Price with zero base amount")
        return cls(
            base_currency=base_amount.currency,
            quote_currency=quote_amount.currency,
            numerator=quote_amount.raw,
            denominator=base_amount.raw,
        )

    @property
    def as_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    @property
    def adjusted(self) -> Fraction:
        """Price in whole units of each currency."""
        return self.as_fraction * Fraction(
            10**self.base_currency.decimals, 10**self.quote_currency.decimals
        )

    def invert(self) -> "Price":
        if self.numerator == 0:
            raise ValueError("Cannot invert a zero price")
        return Price(
            base_currency=self.quote_currency,
            quote_currency=self.base_currency,
            numerator=self.denominator,
            denominator=self.numerator,
        )

    def quote(self, amount: CurrencyAmount, round_up: bool = False) -> CurrencyAmount:
        """Convert a base-currency amount into the quote currency."""
        if not amount.currency.equals(self.base_currency):
            raise CurrencyMismatchError(
                str(amount.currency), str(self.base_currency)
            )
        value = amount.raw * self.as_fraction
        if round_up:
            raw = ceil_div(value.numerator, value.denominator)
        else:
            raw = value.numerator // value.denominator
        return CurrencyAmount(currency=self.quote_currency, raw=raw)

    def _require_comparable(self, other: "Price") -> None:
        if not (
            self.base_currency.equals(other.base_currency)
            and self.quote_currency.equals(other.quote_currency)
        ):
            raise CurrencyMismatchError(
                f"{self.base_currency}/{self.quote_currency}",
                f"{other.base_currency}/{other.quote_currency}",
            )

    def __lt__(self, other: "Price") -> bool:
        self._require_comparable(other)
        return self.as_fraction < other.as_fraction

    def __gt__(self, other: "Price") -> bool:
        self._require_comparable(other)
        return self.as_fraction > other.as_fraction

    def to_significant(self, significant: int = 6) -> str:
        return _render(self.adjusted, significant, ROUND_HALF_UP)


def parse_units(value: str, decimals: int) -> int:
    """Parse a decimal string into smallest units.

    Args:
        value: Decimal string such as "1.25"
        decimals: Currency decimal count

    Returns:
        Integer amount in smallest units

    Raises:
        ParseError: If the value is not a non-negative decimal number or has
            more fractional digits than the currency supports
    """
    text = value.strip()
    match = _AMOUNT_RE.match(text)
    if not match or not any(ch.isdigit() for ch in text):
        raise ParseError(value, "not a decimal number")

    whole, frac = match.group(1), match.group(2) or ""
    if len(frac) > decimals:
        raise ParseError(value, f"more than {decimals} decimal places")

    try:
        units = int(whole or "0") * 10**decimals
    except ValueError as e:
        # Integer strings past the interpreter's digit limit
        raise ParseError(value, "too many digits") from e
    return units + int(frac.ljust(decimals, "0") or "0")


def try_parse_amount(
    value: str | None, currency: BaseCurrency | None
) -> CurrencyAmount | None:
    """Parse a user-typed amount; None means "no amount entered"."""
    if not value or currency is None:
        return None
    try:
        raw = parse_units(value, currency.decimals)
    except ParseError as e:
        logger.debug("Failed to parse input amount", value=value, error=str(e))
        return None
    if raw == 0:
        return None
    return CurrencyAmount(currency=currency, raw=raw)


def amount_fields(amount: CurrencyAmount | None) -> dict[str, Any] | None:
    """Structured-log friendly rendering of an amount."""
    if amount is None:
        return None
    return {"value": amount.to_exact(), "symbol": amount.currency.symbol}
