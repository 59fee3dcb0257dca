"""Wallet session lifecycle and provider normalization."""
from .app import WalletApp
from .broker import ConnectionBroker
from .cache import SessionCache
from .catalog import ProviderCatalog, ProviderKind, ProviderOptions
from .config import WalletSettings
from .errors import (
    ConfirmationTimeout,
    ConnectionInProgress,
    ConnectionRejected,
    ConnectionUnavailable,
    InsufficientFunds,
    NetworkUnavailable,
    SessionRequired,
    UserRejected,
    VerificationMismatch,
    WalletError,
    WalletRpcError,
)
from .provider import Network, UnifiedProvider
from .signer import SignedMessage, SignerFacade
from .transactions import (
    PendingTransaction,
    TransactionExecutor,
    TransactionReceipt,
    TransactionRequest,
)

__all__ = [
    "ConfirmationTimeout",
    "ConnectionBroker",
    "ConnectionInProgress",
    "ConnectionRejected",
    "ConnectionUnavailable",
    "InsufficientFunds",
    "Network",
    "NetworkUnavailable",
    "PendingTransaction",
    "ProviderCatalog",
    "ProviderKind",
    "ProviderOptions",
    "SessionCache",
    "SessionRequired",
    "SignedMessage",
    "SignerFacade",
    "TransactionExecutor",
    "TransactionReceipt",
    "TransactionRequest",
    "UnifiedProvider",
    "UserRejected",
    "VerificationMismatch",
    "WalletApp",
    "WalletError",
    "WalletRpcError",
    "WalletSettings",
]
