"""Ethereum JSON-RPC client serving fees, balances and ENS names."""

import time
from typing import Any

import httpx
import structlog
from eth_utils import keccak, to_checksum_address
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.amounts import CurrencyAmount
from ..core.currency import BaseCurrency
from ..core.interfaces import BalanceProvider, FeeOracle, NameResolver

logger = structlog.get_logger(__name__)

ENS_REGISTRY_ADDRESS = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"

# Function selectors
SELECTOR_BALANCE_OF = "70a08231"
SELECTOR_RESOLVER = "0178b8bf"
SELECTOR_ADDR = "3b3b57de"

ZERO_ADDRESS = "0x" + "0" * 40


class EvmRpcError(Exception):
    """Exception for JSON-RPC errors."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception is retryable."""
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exception, EvmRpcError):
        retryable_codes = {
            -32603,  # Internal error
            -32005,  # Limit exceeded
            429,  # Too many requests
        }
        return exception.code in retryable_codes
    return False


def namehash(name: str) -> bytes:
    """ENS namehash of a dotted name."""
    node = b"\x00" * 32
    if name:
        for label in reversed(name.lower().split(".")):
            node = keccak(node + keccak(text=label))
    return node


def encode_address(address: str) -> str:
    """ABI-encode an address argument (32-byte word, hex without prefix)."""
    return address.lower().removeprefix("0x").rjust(64, "0")


def decode_address(word: str | None) -> str | None:
    """Decode an address return value; None for empty or zero."""
    if not word or word == "0x":
        return None
    address = "0x" + word.removeprefix("0x")[-40:]
    if address == ZERO_ADDRESS:
        return None
    return to_checksum_address(address)


class EvmRpcClient(FeeOracle, BalanceProvider, NameResolver):
    """JSON-RPC client for an EVM chain."""

    def __init__(
        self,
        rpc_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        ens_registry: str = ENS_REGISTRY_ADDRESS,
    ) -> None:
        """Initialize EvmRpcClient.

        Args:
            rpc_url: JSON-RPC endpoint URL
            client: Optional httpx client (will create one if not provided)
            timeout: Request timeout in seconds
            ens_registry: ENS registry contract address
        """
        self.rpc_url = rpc_url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self.timeout = timeout
        self.ens_registry = to_checksum_address(ens_registry)
        self._request_id = 0
        logger.info("EvmRpcClient initialized", rpc_url=rpc_url, timeout=timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _get_request_id(self) -> int:
        """Get next request ID."""
        self._request_id += 1
        return self._request_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable_error),
        reraise=True,
    )
    async def _make_rpc_request(self, method: str, params: list[Any]) -> Any:
        """Make a JSON-RPC request with retries.

        Args:
            method: RPC method name
            params: Method parameters

        Returns:
            RPC response result

        Raises:
            EvmRpcError: For RPC-specific errors
            httpx.HTTPError: For HTTP errors
        """
        request_id = self._get_request_id()
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params,
        }

        start_time = time.time()
        try:
            response = await self.client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            data = response.json()

            if "error" in data:
                error = data["error"]
                raise EvmRpcError(
                    code=error.get("code", -1),
                    message=error.get("message", "Unknown RPC error"),
                    data=error.get("data"),
                )

            logger.debug(
                "RPC request completed",
                method=method,
                request_id=request_id,
                duration=time.time() - start_time,
            )
            return data.get("result")

        except httpx.HTTPError as e:
            logger.error(
                "RPC request failed",
                method=method,
                request_id=request_id,
                duration=time.time() - start_time,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def _eth_call(self, to: str, data: str) -> str | None:
        return await self._make_rpc_request(
            "eth_call", [{"to": to, "data": "0x" + data}, "latest"]
        )

    async def base_fee_per_gas(self) -> int | None:
        """Base fee of the latest block, None on chains without one."""
        block = await self._make_rpc_request("eth_getBlockByNumber", ["latest", False])
        if not block or block.get("baseFeePerGas") is None:
            logger.warning("Latest block has no base fee")
            return None
        return int(block["baseFeePerGas"], 16)

    async def balance_of(
        self, account: str, currency: BaseCurrency
    ) -> CurrencyAmount | None:
        """Native balance or ERC-20 balance of ``account``."""
        if currency.is_native:
            result = await self._make_rpc_request("eth_getBalance", [account, "latest"])
        else:
            result = await self._eth_call(
                currency.address, SELECTOR_BALANCE_OF + encode_address(account)
            )

        if not result or result == "0x":
            return None
        return CurrencyAmount(currency=currency, raw=int(result, 16))

    async def resolve(self, name: str) -> str | None:
        """Resolve an ENS name through the registry's resolver."""
        node = namehash(name).hex()
        resolver = decode_address(
            await self._eth_call(self.ens_registry, SELECTOR_RESOLVER + node)
        )
        if resolver is None:
            logger.info("ENS name has no resolver", name=name)
            return None

        address = decode_address(await self._eth_call(resolver, SELECTOR_ADDR + node))
        logger.debug("Resolved ENS name", name=name, address=address)
        return address
