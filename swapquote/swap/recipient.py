"""Recipient address checks."""

import re
from collections.abc import Iterable

from eth_utils import is_address, to_checksum_address

from ..core.types import Trade

# Infrastructure contracts that must never receive swap output directly
BAD_RECIPIENT_ADDRESSES: tuple[str, ...] = (
    "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",  # v2 factory
    "0xf164fC0Ec4E93095b804a4795bBe1e041497b92a",  # v2 router 01
    "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",  # v2 router 02
)

ENS_NAME_REGEX = re.compile(
    r"^[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)?$"
)
ADDRESS_REGEX = re.compile(r"^0x[a-fA-F0-9]{40}$")


def checksummed(value: str | None) -> str | None:
    """Checksummed form of a valid address, None otherwise."""
    if not value or not is_address(value):
        return None
    return to_checksum_address(value)


def involves_address(trade: Trade, address: str) -> bool:
    """True if any path token or pair of the trade has the given checksummed address."""
    return any(token.address == address for token in trade.route.path) or any(
        pair.address == address for pair in trade.route.pairs
    )


def is_denylisted(address: str, denylist: Iterable[str] = BAD_RECIPIENT_ADDRESSES) -> bool:
    return address in {checksummed(entry) for entry in denylist}


def validated_recipient(recipient: object) -> str | None:
    """Accept an address, an ENS-looking name or a raw 0x address."""
    if not isinstance(recipient, str):
        return None
    address = checksummed(recipient)
    if address:
        return address
    if ENS_NAME_REGEX.match(recipient):
        return recipient
    if ADDRESS_REGEX.match(recipient):
        return recipient
    return None
