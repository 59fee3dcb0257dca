"""Build, submit and await on-chain transactions through the active session."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from web3 import Web3

from .abi import ERC20_ABI, decode_function_result, encode_function_call
from .errors import ConfirmationTimeout, InsufficientFunds
from .provider import UnifiedProvider, to_quantity

DEFAULT_GAS_LIMIT = 0x55555


@dataclass(frozen=True)
class TransactionRequest:
    """
    One transaction as handed to the wallet.

    A request is built for a single submission. Retrying means building a
    new one after checking what happened to the previous hash.
    """

    to: str
    value: int
    data: bytes
    gas: int

    def to_rpc(self, sender: str) -> Dict[str, Any]:
        return {
            "from": sender,
            "to": self.to,
            "value": hex(self.value),
            "data": Web3.to_hex(self.data),
            "gas": hex(self.gas),
        }


@dataclass(frozen=True)
class PendingTransaction:
    """A transaction the wallet has broadcast but that is not yet confirmed."""

    tx_hash: str
    request: TransactionRequest
    sender: str


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    block_number: int
    status: int
    gas_used: int

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=receipt["transactionHash"],
            block_number=to_quantity(receipt["blockNumber"]),
            status=to_quantity(receipt.get("status", "0x1")),
            gas_used=to_quantity(receipt.get("gasUsed", "0x0")),
        )


class TransactionExecutor:
    """
    Sends native and token transfers through the active session's signer.

    Submission is never retried here: a failed or interrupted call may still
    have reached the chain, so the caller re-queries by hash with
    ``get_receipt`` before deciding to send again.
    """

    def __init__(
        self,
        provider: UnifiedProvider,
        confirmation_timeout: Optional[float] = None,
        poll_interval: float = 2.0,
    ):
        """
        Parameters
        ----------
        provider : UnifiedProvider
            Provider of the active session.
        confirmation_timeout : Optional[float]
            Default bound in seconds for ``wait``; None waits until cancelled.
        poll_interval : float
            Seconds between receipt polls.
        """
        self._provider = provider
        self._signer = provider.get_signer()
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    async def _ensure_gas_funds(self, value: int, gas: int) -> None:
        balance = await self._provider.get_balance(self._signer.address)
        gas_price = await self._provider.get_gas_price()
        required = value + gas * gas_price
        if balance < required:
            logging.error(
                f"Insufficient funds for {self._signer.address}: balance {balance}, required {required}"
            )
            raise InsufficientFunds(
                f"Balance {balance} wei does not cover {value} wei plus gas ({gas} x {gas_price} wei)"
            )

    async def _token_balance(self, token_contract: str, owner: str) -> int:
        data = encode_function_call(ERC20_ABI, "balanceOf", [owner])
        result = await self._provider.call(token_contract, data)
        if not result:
            return 0
        return decode_function_result(ERC20_ABI, "balanceOf", result)

    async def _submit(self, request: TransactionRequest) -> PendingTransaction:
        tx_hash = await self._signer.send_transaction(request.to_rpc(self._signer.address))
        logging.info(
            f"Transaction submitted: {tx_hash} to {request.to} value={request.value} gas={request.gas}"
        )
        return PendingTransaction(tx_hash=tx_hash, request=request, sender=self._signer.address)

    async def submit_native(
        self, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> PendingTransaction:
        """
        Submit a native transfer of ``amount`` wei.

        Raises InsufficientFunds before broadcasting when the balance cannot
        cover the amount and gas.
        """
        if amount < 0:
            raise ValueError("Amount must not be negative")
        request = TransactionRequest(
            to=Web3.to_checksum_address(to), value=amount, data=b"", gas=gas_limit
        )
        await self._ensure_gas_funds(request.value, request.gas)
        return await self._submit(request)

    async def submit_token_transfer(
        self, token_contract: str, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> PendingTransaction:
        """
        Submit an ERC-20 ``transfer(to, amount)`` call on ``token_contract``.

        The amount travels in the calldata; the native value is zero.
        """
        if amount <= 0:
            raise ValueError("Amount must be positive")
        token_contract = Web3.to_checksum_address(token_contract)
        recipient = Web3.to_checksum_address(to)

        token_balance = await self._token_balance(token_contract, self._signer.address)
        if token_balance < amount:
            logging.error(f"Insufficient token balance: {token_balance} < {amount}")
            raise InsufficientFunds(
                f"Token balance {token_balance} of {token_contract} is below {amount}"
            )

        request = TransactionRequest(
            to=token_contract,
            value=0,
            data=encode_function_call(ERC20_ABI, "transfer", [recipient, amount]),
            gas=gas_limit,
        )
        await self._ensure_gas_funds(request.value, request.gas)
        return await self._submit(request)

    async def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        """Current fate of a transaction: its receipt, or None while it is unconfirmed."""
        receipt = await self._provider.get_transaction_receipt(tx_hash)
        if not receipt or receipt.get("blockNumber") is None:
            return None
        return TransactionReceipt.from_rpc(receipt)

    async def _poll_receipt(self, tx_hash: str) -> TransactionReceipt:
        while True:
            receipt = await self.get_receipt(tx_hash)
            if receipt is not None:
                return receipt
            await asyncio.sleep(self.poll_interval)

    async def wait(
        self, pending: PendingTransaction, timeout: Optional[float] = None
    ) -> TransactionReceipt:
        """
        Wait for ``pending`` to be confirmed.

        Parameters
        ----------
        pending : PendingTransaction
            The submitted transaction.
        timeout : Optional[float]
            Bound in seconds; falls back to the executor's
            ``confirmation_timeout``. With neither set the wait only ends on
            confirmation or cancellation.
        """
        bound = timeout if timeout is not None else self.confirmation_timeout
        if bound is None:
            receipt = await self._poll_receipt(pending.tx_hash)
        else:
            try:
                receipt = await asyncio.wait_for(self._poll_receipt(pending.tx_hash), bound)
            except asyncio.TimeoutError:
                logging.error(f"Transaction {pending.tx_hash} not confirmed within {bound}s")
                raise ConfirmationTimeout(pending.tx_hash, bound) from None

        logging.info(
            f"Transaction {receipt.tx_hash} confirmed in block {receipt.block_number}, status {receipt.status}"
        )
        return receipt

    async def send_native(
        self, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TransactionReceipt:
        pending = await self.submit_native(to, amount, gas_limit)
        return await self.wait(pending)

    async def send_token_transfer(
        self, token_contract: str, to: str, amount: int, gas_limit: int = DEFAULT_GAS_LIMIT
    ) -> TransactionReceipt:
        pending = await self.submit_token_transfer(token_contract, to, amount, gas_limit)
        return await self.wait(pending)
