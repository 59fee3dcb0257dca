"""Connection broker: provider selection and the connect/disconnect protocol."""
import logging
from typing import Mapping, Optional, Tuple

from .cache import SessionCache
from .catalog import ProviderCatalog, ProviderKind, detect_injected_session_wallet
from .connectors.base import Session, WalletConnector
from .errors import ConnectionInProgress, ConnectionRejected, ConnectionUnavailable, WalletError
from .provider import UnifiedProvider


class ConnectionBroker:
    """
    Owns the single wallet session of an application.

    At most one connect runs at a time. The session, its UnifiedProvider and
    the cached provider kind change together in one step once a connection
    has fully succeeded, so a cancelled or failed connect leaves them as they
    were.
    """

    def __init__(
        self,
        catalog: ProviderCatalog,
        cache: SessionCache,
        connectors: Mapping[ProviderKind, WalletConnector],
        read_retries: int = 2,
    ):
        """
        Initialize the broker.

        Parameters
        ----------
        catalog : ProviderCatalog
            Static provider options.
        cache : SessionCache
            Persisted last-connected provider kind.
        connectors : Mapping[ProviderKind, WalletConnector]
            Connector for each provider kind.
        read_retries : int
            Passed to every UnifiedProvider the broker creates.
        """
        self.catalog = catalog
        self.cache = cache
        self.connectors = dict(connectors)
        self.read_retries = read_retries
        self._available: Optional[Tuple[ProviderKind, ...]] = None
        self._session: Optional[Session] = None
        self._provider: Optional[UnifiedProvider] = None
        self._connecting = False

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def provider(self) -> Optional[UnifiedProvider]:
        return self._provider

    def is_connected(self) -> bool:
        return self._session is not None

    def is_connecting(self) -> bool:
        return self._connecting

    async def initialize(self) -> Tuple[ProviderKind, ...]:
        """
        Work out which provider kinds to offer. Runs the capability probe once;
        later calls return the cached result.
        """
        if self._available is None:
            injected = self.connectors.get(ProviderKind.INJECTED)
            capable = await detect_injected_session_wallet(injected) if injected else False
            self._available = self.catalog.available_kinds(capable)
            logging.info(f"Available wallet providers: {[k.value for k in self._available]}")
        return self._available

    def list_available_providers(self) -> Tuple[ProviderKind, ...]:
        if self._available is None:
            raise RuntimeError("ConnectionBroker.initialize() has not run")
        return self._available

    async def connect(self, choice: ProviderKind, prompt: bool = True) -> Session:
        """
        Connect to the wallet of the chosen provider kind.

        Parameters
        ----------
        choice : ProviderKind
            The provider kind the user picked.
        prompt : bool
            Whether the wallet may ask the user for consent.

        Returns
        -------
        Session
            The new active session.
        """
        if self._connecting:
            raise ConnectionInProgress(f"Cannot connect to {choice.value}: a connect is pending")

        self._connecting = True
        try:
            return await self._connect(choice, prompt)
        finally:
            self._connecting = False

    async def _connect(self, choice: ProviderKind, prompt: bool) -> Session:
        if choice not in self.list_available_providers():
            raise ConnectionUnavailable(f"{choice.value} is not offered")
        connector = self.connectors.get(choice)
        if connector is None:
            raise ConnectionUnavailable(f"No connector for {choice.value}")

        cached = self.cache.get()
        if cached is not None and cached is not choice:
            logging.info(f"Clearing cached provider {cached.value} before connecting {choice.value}")
            self.cache.clear()

        try:
            wallet = await connector.connect(prompt=prompt)
        except WalletError as e:
            logging.error(f"Error connecting to {choice.value}: {e}")
            raise

        session = Session(kind=choice, wallet=wallet)
        provider = UnifiedProvider(session, read_retries=self.read_retries)

        previous = self._session
        self.cache.set(choice)
        self._session, self._provider = session, provider
        logging.info(f"Session established with {choice.value}: {session.address}")

        if previous is not None and previous.wallet is not wallet:
            await self._teardown_replaced(previous)
        return session

    async def _teardown_replaced(self, previous: Session) -> None:
        teardown = getattr(previous.wallet, "disconnect_session", None)
        if teardown is None:
            return
        try:
            await teardown()
        except WalletError as e:
            logging.warning(f"Replaced {previous.kind.value} session did not close cleanly: {e}")

    async def reconnect_from_cache(self) -> Optional[Session]:
        """
        Silently restore the last session at startup.

        Never raises for wallet failures: any of them leaves the application
        without a session. A user rejection also forgets the cached kind;
        an unreachable wallet keeps it for the next start.
        """
        cached = self.cache.get()
        if cached is None:
            return None

        if cached not in self.list_available_providers():
            logging.info(f"Cached provider {cached.value} is no longer offered")
            self.cache.clear()
            return None

        try:
            return await self.connect(cached, prompt=False)
        except ConnectionRejected as e:
            logging.warning(f"Silent reconnect to {cached.value} rejected: {e}")
            self.cache.clear()
        except WalletError as e:
            logging.warning(f"Silent reconnect to {cached.value} failed: {e}")
        return None

    async def disconnect(self, session: Optional[Session] = None) -> None:
        """
        End the active session.

        Parameters
        ----------
        session : Optional[Session]
            Session to end; defaults to the active one. A session that is no
            longer active is left alone.
        """
        current = self._session
        if session is not None and session is not current:
            logging.info("Disconnect requested for an inactive session, ignoring")
            return

        self._session, self._provider = None, None
        self.cache.clear()
        if current is None:
            return

        logging.info(f"Session with {current.kind.value} disconnected: {current.address}")
        teardown = getattr(current.wallet, "disconnect_session", None)
        if teardown is not None:
            try:
                await teardown()
            except WalletError as e:
                logging.error(f"Error closing {current.kind.value} wallet session: {e}")
                raise
