"""EIP-1193 style request transport shared by every wallet connector."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import aiohttp
from web3.providers.rpc import AsyncHTTPProvider

from .errors import (
    ConnectionUnavailable,
    InsufficientFunds,
    NetworkUnavailable,
    UserRejected,
    WalletRpcError,
)

# Methods that wait on the user inside the wallet UI. They run without a
# request timeout; the wallet may still impose its own.
INTERACTIVE_METHODS = frozenset(
    {
        "eth_requestAccounts",
        "personal_sign",
        "eth_signTypedData_v4",
        "eth_sendTransaction",
        "wallet_switchEthereumChain",
    }
)

USER_REJECTED_CODE = 4001
DISCONNECTED_CODES = frozenset({4100, 4900, 4901})


def raise_for_rpc_error(method: str, error: dict) -> None:
    """
    Translate a JSON-RPC error object into the wallet error taxonomy.

    Parameters
    ----------
    method : str
        The request method that failed.
    error : dict
        The ``error`` member of the JSON-RPC response.
    """
    code = error.get("code", -1)
    message = str(error.get("message", ""))
    if code == USER_REJECTED_CODE:
        raise UserRejected(f"{method} rejected by user: {message}")
    if code in DISCONNECTED_CODES:
        raise ConnectionUnavailable(f"{method} failed, wallet disconnected: {message}")
    if "insufficient funds" in message.lower():
        raise InsufficientFunds(message)
    raise WalletRpcError(method, code, message)


class WalletTransport(ABC):
    """Request channel to a wallet, shaped like an EIP-1193 provider."""

    @abstractmethod
    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """
        Send one request to the wallet.

        Parameters
        ----------
        method : str
            JSON-RPC method name.
        params : Optional[Sequence[Any]]
            Positional parameters.

        Returns
        -------
        Any
            The ``result`` member of the response.
        """
        pass

    async def close(self) -> None:
        """Release any network resources held by the transport."""
        return None


class HttpWalletTransport(WalletTransport):
    """
    Wallet transport over HTTP JSON-RPC, built on web3's AsyncHTTPProvider.

    Reads use ``request_timeout``; interactive methods wait on the user
    without a timeout. web3's own request retries are off: reads are
    retried by UnifiedProvider and sends must never be repeated.
    """

    def __init__(self, endpoint_uri: str, request_timeout: float = 30.0):
        self.endpoint_uri = endpoint_uri
        self._reads = AsyncHTTPProvider(
            endpoint_uri,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)},
            exception_retry_configuration=None,
        )
        self._interactive = AsyncHTTPProvider(
            endpoint_uri,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=None)},
            exception_retry_configuration=None,
        )

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        provider = self._interactive if method in INTERACTIVE_METHODS else self._reads
        try:
            response = await provider.make_request(method, list(params or []))
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logging.error(f"Wallet request {method} to {self.endpoint_uri} failed: {e}")
            raise NetworkUnavailable(f"{method}: {e}") from e

        if response.get("error"):
            raise_for_rpc_error(method, response["error"])
        return response.get("result")

    async def close(self) -> None:
        await self._reads.disconnect()
        await self._interactive.disconnect()
