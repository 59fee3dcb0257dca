"""Long-lived application object wiring the wallet session components together."""
import logging
from typing import Any, Dict, List, Mapping, Optional

from .broker import ConnectionBroker
from .cache import SessionCache
from .catalog import ProviderCatalog, ProviderKind
from .config import WalletSettings
from .connectors import (
    InjectedWalletConnector,
    RelayWalletConnector,
    Session,
    SessionWalletConnector,
    WalletConnector,
)
from .errors import SessionRequired
from .provider import Network, UnifiedProvider
from .signer import SignedMessage, SignerFacade
from .transactions import DEFAULT_GAS_LIMIT, TransactionExecutor, TransactionReceipt

# trigger name -> whether it needs an active session
TRIGGERS: Dict[str, bool] = {
    "connect": False,
    "disconnect": False,
    "chain_id": True,
    "accounts": True,
    "balance": True,
    "network": True,
    "sign_message": True,
    "sign_typed_data": True,
    "send_native": True,
    "send_token": True,
}


def default_connectors(
    catalog: ProviderCatalog, settings: WalletSettings
) -> Dict[ProviderKind, WalletConnector]:
    return {
        ProviderKind.INJECTED: InjectedWalletConnector(
            catalog.options(ProviderKind.INJECTED), request_timeout=settings.request_timeout
        ),
        ProviderKind.RELAY: RelayWalletConnector(
            catalog.options(ProviderKind.RELAY), request_timeout=settings.request_timeout
        ),
        ProviderKind.SESSION: SessionWalletConnector(
            catalog.options(ProviderKind.SESSION), request_timeout=settings.request_timeout
        ),
    }


class WalletApp:
    """
    The wallet session layer of one application instance.

    Construct it once at application start, call ``start()`` before the
    selection surface is shown and ``stop()`` on shutdown. Components that
    need wallet access receive this object rather than reaching for
    module-level state.
    """

    def __init__(
        self,
        settings: Optional[WalletSettings] = None,
        connectors: Optional[Mapping[ProviderKind, WalletConnector]] = None,
        cache: Optional[SessionCache] = None,
    ):
        self.settings = settings or WalletSettings.from_env()
        self.catalog = ProviderCatalog(self.settings)
        self.cache = cache or SessionCache(self.settings.cache_path)
        self.connectors = (
            dict(connectors) if connectors is not None
            else default_connectors(self.catalog, self.settings)
        )
        self.broker = ConnectionBroker(
            self.catalog, self.cache, self.connectors, read_retries=self.settings.read_retries
        )

    async def start(self) -> Optional[Session]:
        """Detect provider capabilities, then silently restore a cached session."""
        await self.broker.initialize()
        session = await self.broker.reconnect_from_cache()
        if session is not None:
            logging.info(f"Restored {session.kind.value} session for {session.address}")
        return session

    async def stop(self) -> None:
        """Release transports. The cached provider is kept for the next start."""
        for connector in self.connectors.values():
            await connector.close()

    def available_providers(self) -> List[ProviderKind]:
        return list(self.broker.list_available_providers())

    def triggers(self) -> Dict[str, bool]:
        """Each trigger name and whether it can be invoked right now."""
        connected = self.broker.is_connected()
        states = {name: connected or not needs_session for name, needs_session in TRIGGERS.items()}
        states["connect"] = not self.broker.is_connecting()
        return states

    async def invoke(self, name: str, **kwargs: Any) -> Any:
        """Run a trigger by name; disabled triggers fail before doing anything."""
        if name not in TRIGGERS:
            raise KeyError(f"Unknown trigger: {name}")
        if TRIGGERS[name] and not self.broker.is_connected():
            raise SessionRequired(f"'{name}' requires a connected wallet")
        return await getattr(self, name)(**kwargs)

    def _provider(self) -> UnifiedProvider:
        provider = self.broker.provider
        if provider is None:
            raise SessionRequired("No wallet connected")
        return provider

    async def connect(self, kind: str) -> Session:
        return await self.broker.connect(ProviderKind(kind))

    async def disconnect(self) -> None:
        await self.broker.disconnect()

    async def chain_id(self) -> int:
        return await self._provider().get_chain_id()

    async def accounts(self) -> List[str]:
        return await self._provider().list_accounts()

    async def balance(self, address: Optional[str] = None) -> int:
        return await self._provider().get_balance(address)

    async def network(self) -> Network:
        return await self._provider().get_network()

    async def sign_message(self, message: str) -> SignedMessage:
        return await SignerFacade(self._provider()).sign_message(message)

    async def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, List[Mapping[str, str]]],
        message: Mapping[str, Any],
        primary_type: Optional[str] = None,
    ) -> SignedMessage:
        return await SignerFacade(self._provider()).sign_typed_data(
            domain, types, message, primary_type
        )

    def executor(self) -> TransactionExecutor:
        return TransactionExecutor(
            self._provider(),
            confirmation_timeout=self.settings.confirmation_timeout,
            poll_interval=self.settings.poll_interval,
        )

    async def send_native(
        self, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TransactionReceipt:
        return await self.executor().send_native(to, amount, gas_limit)

    async def send_token(
        self, token: str, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TransactionReceipt:
        return await self.executor().send_token_transfer(token, to, amount, gas_limit)
