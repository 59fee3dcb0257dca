"""Environment configuration for the wallet session layer."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_CACHE_PATH = Path.home() / ".wallet_session" / "cached_provider.json"


def _optional_float(name: str) -> Optional[float]:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    return float(value)


@dataclass(frozen=True)
class WalletSettings:
    """
    Settings shared by every component of a WalletApp.

    Parameters
    ----------
    injected_url : str
        JSON-RPC endpoint of the injected (local) wallet.
    relay_url : Optional[str]
        Bridge endpoint of the relay wallet. Connecting through the relay
        fails unless both this and ``relay_project_id`` are set.
    relay_project_id : Optional[str]
        Project identifier registered with the relay service.
    session_url : Optional[str]
        Endpoint of the smart-contract session wallet service. Connecting
        to the session wallet fails while it is unset.
    app_name : str
        Application name presented by the session wallet.
    default_network : str
        Network the session wallet opens on.
    cache_path : Path
        File holding the last connected provider kind.
    confirmation_timeout : Optional[float]
        Seconds to wait for a receipt; None waits without bound.
    poll_interval : float
        Seconds between receipt polls.
    read_retries : int
        Extra attempts for idempotent reads after a network failure.
    request_timeout : float
        Per-request HTTP timeout for wallet transports.
    """

    injected_url: str = "http://127.0.0.1:1248"
    relay_url: Optional[str] = None
    relay_project_id: Optional[str] = None
    session_url: Optional[str] = None
    app_name: str = "Web3Modal Demo Dapp"
    default_network: str = "polygon"
    cache_path: Path = field(default_factory=lambda: DEFAULT_CACHE_PATH)
    confirmation_timeout: Optional[float] = None
    poll_interval: float = 2.0
    read_retries: int = 2
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "WalletSettings":
        """Build settings from ``WALLET_*`` environment variables."""
        cache_path = os.environ.get("WALLET_CACHE_PATH")
        return cls(
            injected_url=os.environ.get("WALLET_INJECTED_URL", "http://127.0.0.1:1248"),
            relay_url=os.environ.get("WALLET_RELAY_URL") or None,
            relay_project_id=os.environ.get("WALLET_RELAY_PROJECT_ID") or None,
            session_url=os.environ.get("WALLET_SESSION_URL") or None,
            app_name=os.environ.get("WALLET_APP_NAME", "Web3Modal Demo Dapp"),
            default_network=os.environ.get("WALLET_DEFAULT_NETWORK", "polygon"),
            cache_path=Path(cache_path).expanduser() if cache_path else DEFAULT_CACHE_PATH,
            confirmation_timeout=_optional_float("WALLET_CONFIRMATION_TIMEOUT"),
            poll_interval=float(os.environ.get("WALLET_POLL_INTERVAL", "2.0")),
            read_retries=int(os.environ.get("WALLET_READ_RETRIES", "2")),
            request_timeout=float(os.environ.get("WALLET_REQUEST_TIMEOUT", "30")),
        )
