"""Provider kinds and their static connection options."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Tuple

from .config import WalletSettings
from .errors import WalletError

if TYPE_CHECKING:
    from .connectors.injected import InjectedWalletConnector


class ProviderKind(str, Enum):
    """Wallet technologies a user can pick from."""

    INJECTED = "injected"
    RELAY = "walletconnect"
    SESSION = "sequence"


@dataclass(frozen=True)
class ProviderOptions:
    """
    Connection options for one provider kind.

    Parameters
    ----------
    kind : ProviderKind
        The provider kind these options belong to.
    display_name : str
        Label shown in the selection surface.
    endpoint : Optional[str]
        Transport endpoint for the kind, when it has one.
    extra : Mapping[str, str]
        Kind-specific options (relay project id, app metadata, network).
    """

    kind: ProviderKind
    display_name: str
    endpoint: Optional[str] = None
    extra: Mapping[str, str] = field(default_factory=dict)


class ProviderCatalog:
    """Static mapping from provider kind to connection options."""

    ORDER: Tuple[ProviderKind, ...] = (
        ProviderKind.INJECTED,
        ProviderKind.RELAY,
        ProviderKind.SESSION,
    )

    def __init__(self, settings: WalletSettings):
        extra_relay: Dict[str, str] = {}
        if settings.relay_project_id:
            extra_relay["project_id"] = settings.relay_project_id

        self._options: Dict[ProviderKind, ProviderOptions] = {
            ProviderKind.INJECTED: ProviderOptions(
                kind=ProviderKind.INJECTED,
                display_name="Browser Wallet",
                endpoint=settings.injected_url,
            ),
            ProviderKind.RELAY: ProviderOptions(
                kind=ProviderKind.RELAY,
                display_name="WalletConnect",
                endpoint=settings.relay_url,
                extra=extra_relay,
            ),
            ProviderKind.SESSION: ProviderOptions(
                kind=ProviderKind.SESSION,
                display_name="Sequence",
                endpoint=settings.session_url,
                extra={
                    "app_name": settings.app_name,
                    "default_network": settings.default_network,
                },
            ),
        }

    def options(self, kind: ProviderKind) -> ProviderOptions:
        """
        Connection options for one kind.

        Parameters
        ----------
        kind : ProviderKind
            The provider kind to look up.

        Returns
        -------
        ProviderOptions
            Display name, endpoint and kind-specific extras.
        """
        return self._options[kind]

    def available_kinds(self, injected_is_session_wallet: bool) -> Tuple[ProviderKind, ...]:
        """
        Kinds to offer, in display order.

        The session wallet option is dropped when the injected wallet is
        already a session wallet, since offering it would duplicate the
        injected entry.
        """
        if injected_is_session_wallet:
            return tuple(k for k in self.ORDER if k is not ProviderKind.SESSION)
        return self.ORDER


async def detect_injected_session_wallet(connector: "InjectedWalletConnector") -> bool:
    """
    Report whether the injected wallet is itself a session wallet.

    An unreachable injected wallet counts as not capable.
    """
    try:
        capable = await connector.is_session_wallet()
    except WalletError as e:
        logging.info(f"Injected wallet probe failed, assuming no session support: {e}")
        return False
    logging.info(f"Injected wallet session support: {capable}")
    return capable
