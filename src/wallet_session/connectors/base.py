"""Base wallet connector interface and the raw wallet variants it produces."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

from web3 import Web3

from ..catalog import ProviderKind, ProviderOptions
from ..errors import (
    ConnectionRejected,
    ConnectionUnavailable,
    NetworkUnavailable,
    UserRejected,
    WalletError,
    WalletRpcError,
)
from ..signer import Signer
from ..transport import HttpWalletTransport, WalletTransport


def checksum_accounts(accounts: Optional[Sequence[str]]) -> Tuple[str, ...]:
    return tuple(Web3.to_checksum_address(a) for a in accounts or ())


@dataclass(frozen=True)
class InjectedWallet:
    """Wallet reached directly, without any provider-level session."""

    transport: WalletTransport
    accounts: Tuple[str, ...]
    client_version: str = ""
    kind: ProviderKind = field(default=ProviderKind.INJECTED, init=False)

    def get_signer(self) -> Signer:
        return Signer(self.transport, self.accounts[0])


@dataclass(frozen=True)
class RelayWallet:
    """Wallet negotiated over a relay; the relay topic identifies the pairing."""

    transport: WalletTransport
    accounts: Tuple[str, ...]
    topic: str
    kind: ProviderKind = field(default=ProviderKind.RELAY, init=False)

    def get_signer(self) -> Signer:
        return Signer(self.transport, self.accounts[0])

    async def disconnect_session(self) -> None:
        await self.transport.request("wc_sessionDelete", [{"topic": self.topic}])
        logging.info(f"Relay session {self.topic} deleted")


class WalletSessionHandle:
    """Session object owned by a smart-contract session wallet."""

    def __init__(self, transport: WalletTransport, session_id: str):
        self.transport = transport
        self.session_id = session_id
        self.closed = False

    async def disconnect(self) -> None:
        if self.closed:
            return
        await self.transport.request("sequence_closeSession", [self.session_id])
        self.closed = True
        logging.info(f"Session wallet session {self.session_id} closed")


@dataclass(frozen=True)
class SessionWallet:
    """Smart-contract wallet reached through a session service."""

    transport: WalletTransport
    accounts: Tuple[str, ...]
    session: WalletSessionHandle
    kind: ProviderKind = field(default=ProviderKind.SESSION, init=False)

    def get_signer(self) -> Signer:
        return Signer(self.transport, self.accounts[0])

    async def disconnect_session(self) -> None:
        await self.session.disconnect()


RawWallet = Union[InjectedWallet, RelayWallet, SessionWallet]


@dataclass(frozen=True)
class Session:
    """A successful connection: the raw wallet plus the kind that produced it."""

    kind: ProviderKind
    wallet: RawWallet

    @property
    def address(self) -> str:
        return self.wallet.accounts[0]


class WalletConnector(ABC):
    """Abstract base class for wallet connectors."""

    kind: ProviderKind

    def __init__(
        self,
        options: ProviderOptions,
        transport: Optional[WalletTransport] = None,
        request_timeout: float = 30.0,
    ):
        """
        Initialize the connector.

        Parameters
        ----------
        options : ProviderOptions
            Catalog options for this connector's kind.
        transport : Optional[WalletTransport]
            Transport to use instead of an HTTP transport on ``options.endpoint``.
        request_timeout : float
            Timeout for non-interactive HTTP requests.
        """
        self.options = options
        self._transport = transport
        self._request_timeout = request_timeout

    @property
    def transport(self) -> WalletTransport:
        if self._transport is None:
            if not self.options.endpoint:
                raise ConnectionUnavailable(
                    f"{self.options.display_name} has no endpoint configured"
                )
            self._transport = HttpWalletTransport(self.options.endpoint, self._request_timeout)
        return self._transport

    async def connect(self, prompt: bool = True) -> RawWallet:
        """
        Obtain a raw wallet handle.

        Parameters
        ----------
        prompt : bool
            Whether the wallet may ask the user for consent. Silent
            reconnects pass False.

        Returns
        -------
        RawWallet
            The connected wallet variant for this kind.
        """
        try:
            wallet = await self._open(prompt)
        except UserRejected as e:
            raise ConnectionRejected(f"{self.options.display_name}: {e}") from e
        except NetworkUnavailable as e:
            raise ConnectionUnavailable(
                f"{self.options.display_name} unreachable: {e}"
            ) from e
        except WalletRpcError as e:
            raise ConnectionUnavailable(
                f"{self.options.display_name} could not connect: {e}"
            ) from e

        if not wallet.accounts:
            await self._release(wallet)
            if prompt:
                raise ConnectionRejected(f"{self.options.display_name} returned no accounts")
            raise ConnectionUnavailable(f"{self.options.display_name} is not authorized")

        logging.info(f"{self.options.display_name} connected: {wallet.accounts[0]}")
        return wallet

    async def _release(self, wallet: RawWallet) -> None:
        """Close the wallet-side session of a handshake that will not be used."""
        teardown = getattr(wallet, "disconnect_session", None)
        if teardown is None:
            return
        try:
            await teardown()
        except WalletError as e:
            logging.warning(f"{self.options.display_name} session left open: {e}")

    @abstractmethod
    async def _open(self, prompt: bool) -> RawWallet:
        """Run the kind-specific connection handshake."""
        pass

    async def close(self) -> None:
        """Release the connector's transport."""
        if self._transport is not None:
            await self._transport.close()
