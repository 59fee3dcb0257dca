"""Error taxonomy for wallet session operations."""


class WalletError(RuntimeError):
    """Base class for every failure surfaced by the wallet session layer."""

    http_status: int = 500


class ConnectionRejected(WalletError):
    """The user declined the wallet's own consent flow while connecting."""

    http_status = 403


class ConnectionUnavailable(WalletError):
    """The chosen provider kind could not be initialized."""

    http_status = 503


class ConnectionInProgress(WalletError):
    """A connect attempt is already pending."""

    http_status = 409


class NetworkUnavailable(WalletError):
    """The wallet transport could not reach the chain."""

    http_status = 502


class UserRejected(WalletError):
    """The user declined a signing or transaction request."""

    http_status = 403


class InsufficientFunds(WalletError):
    """The account cannot cover the value and gas of a transaction."""

    http_status = 402


class ConfirmationTimeout(WalletError):
    """A submitted transaction was not confirmed within the configured bound."""

    http_status = 504

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class VerificationMismatch(WalletError):
    """A signature does not recover to the claimed signer."""

    http_status = 422


class SessionRequired(WalletError):
    """An action that needs an active session was invoked without one."""

    http_status = 409


class WalletRpcError(WalletError):
    """The wallet answered a request with an error this layer does not classify."""

    http_status = 502

    def __init__(self, method: str, code: int, message: str):
        super().__init__(f"{method} failed with code {code}: {message}")
        self.method = method
        self.code = code
