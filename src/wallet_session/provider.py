"""One read interface over every kind of connected wallet."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from web3 import Web3

from .connectors.base import Session, WalletSessionHandle
from .errors import NetworkUnavailable
from .signer import Signer

KNOWN_NETWORKS = {
    1: "homestead",
    10: "optimism",
    56: "bnb",
    100: "gnosis",
    137: "matic",
    8453: "base",
    42161: "arbitrum",
    43114: "avalanche",
    80002: "matic-amoy",
    84532: "base-sepolia",
    11155111: "sepolia",
}


@dataclass(frozen=True)
class Network:
    chain_id: int
    name: str


def to_quantity(value: Any) -> int:
    if isinstance(value, str):
        return Web3.to_int(hexstr=value)
    return int(value)


class UnifiedProvider:
    """
    Read and signing access to the wallet of one session.

    Nothing is cached: every call goes to the wallet, so a chain switch made
    in the wallet shows up on the next read. A new session gets a new
    UnifiedProvider; an existing one is never repointed.
    """

    def __init__(self, session: Session, read_retries: int = 2, retry_delay: float = 0.25):
        """
        Parameters
        ----------
        session : Session
            The session whose wallet this provider wraps.
        read_retries : int
            Extra attempts for balance and network reads after a network failure.
        retry_delay : float
            Base delay between those attempts, doubled on each retry.
        """
        self.session = session
        self._transport = session.wallet.transport
        self._signer = session.wallet.get_signer()
        self._read_retries = read_retries
        self._retry_delay = retry_delay

    @property
    def kind(self):
        return self.session.kind

    @property
    def address(self) -> str:
        return self._signer.address

    @property
    def session_ref(self) -> Optional[WalletSessionHandle]:
        """The wallet's own session object, for wallets that have one."""
        return getattr(self.session.wallet, "session", None)

    def get_signer(self) -> Signer:
        """Signer for the session's account."""
        return self._signer

    async def _request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        return await self._transport.request(method, list(params or []))

    async def _idempotent_request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        attempt = 0
        while True:
            try:
                return await self._request(method, params)
            except NetworkUnavailable as e:
                if attempt >= self._read_retries:
                    raise
                delay = self._retry_delay * (2 ** attempt)
                attempt += 1
                logging.warning(f"{method} failed ({e}), retry {attempt}/{self._read_retries} in {delay}s")
                await asyncio.sleep(delay)

    async def get_chain_id(self) -> int:
        """
        Chain id the wallet is on right now.

        Returns
        -------
        int
            The chain id. It is read from the wallet on every call and never cached.
        """
        return to_quantity(await self._request("eth_chainId"))

    async def list_accounts(self) -> List[str]:
        """
        Accounts the wallet exposes to this session.

        Returns
        -------
        List[str]
            Checksummed addresses, in the order the wallet reports them.
        """
        accounts = await self._request("eth_accounts")
        return [Web3.to_checksum_address(a) for a in accounts or []]

    async def get_balance(self, address: Optional[str] = None, block: str = "latest") -> int:
        """
        Balance in wei.

        Parameters
        ----------
        address : Optional[str]
            Account to query; defaults to the session's account.
        block : str
            Block tag to read at.
        """
        address = Web3.to_checksum_address(address or self.address)
        return to_quantity(await self._idempotent_request("eth_getBalance", [address, block]))

    async def get_network(self) -> Network:
        """
        Chain id and well-known name of the current network.

        Returns
        -------
        Network
            Named "unknown" for chains outside the known list.
        """
        chain_id = to_quantity(await self._idempotent_request("eth_chainId"))
        return Network(chain_id=chain_id, name=KNOWN_NETWORKS.get(chain_id, "unknown"))

    async def get_gas_price(self) -> int:
        """Current gas price in wei."""
        return to_quantity(await self._request("eth_gasPrice"))

    async def get_code(self, address: str) -> bytes:
        """
        Deployed bytecode at an address.

        Parameters
        ----------
        address : str
            Account to inspect.

        Returns
        -------
        bytes
            Empty for externally owned accounts.
        """
        code = await self._request("eth_getCode", [Web3.to_checksum_address(address), "latest"])
        return Web3.to_bytes(hexstr=code or "0x")

    async def call(self, to: str, data: bytes) -> bytes:
        """Run a read-only contract call (eth_call) and return the raw result."""
        result = await self._request(
            "eth_call",
            [{"to": Web3.to_checksum_address(to), "data": Web3.to_hex(data)}, "latest"],
        )
        return Web3.to_bytes(hexstr=result or "0x")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        """
        Raw receipt of a transaction.

        Parameters
        ----------
        tx_hash : str
            Hash returned when the transaction was submitted.

        Returns
        -------
        Optional[dict]
            None while the transaction is not yet mined.
        """
        return await self._idempotent_request("eth_getTransactionReceipt", [tx_hash])

    async def switch_chain(self, chain_id: int) -> None:
        """Ask the wallet to move to another chain; the session stays the same."""
        await self._request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])
        logging.info(f"Wallet switched to chain {chain_id}")
