"""Wallet connector implementations."""
from .base import (
    InjectedWallet,
    RawWallet,
    RelayWallet,
    Session,
    SessionWallet,
    WalletConnector,
    WalletSessionHandle,
)
from .injected import InjectedWalletConnector
from .relay import RelayWalletConnector
from .session import SessionWalletConnector

__all__ = [
    "InjectedWallet",
    "InjectedWalletConnector",
    "RawWallet",
    "RelayWallet",
    "RelayWalletConnector",
    "Session",
    "SessionWallet",
    "SessionWalletConnector",
    "WalletConnector",
    "WalletSessionHandle",
]
