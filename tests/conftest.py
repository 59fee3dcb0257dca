"""
Shared fixtures: an in-memory chain and an EIP-1193 wallet fake.

The fake wallet signs with a real eth-account key, so every signature the
tests check is real secp256k1 output.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data
from eth_account.signers.local import LocalAccount
from eth_utils import function_abi_to_4byte_selector, keccak
from web3 import Web3

from wallet_session.abi import ERC20_ABI, ERC1271_ABI, ERC1271_MAGIC_VALUE
from wallet_session.broker import ConnectionBroker
from wallet_session.cache import SessionCache
from wallet_session.catalog import ProviderCatalog, ProviderKind
from wallet_session.config import WalletSettings
from wallet_session.connectors import (
    InjectedWalletConnector,
    RelayWalletConnector,
    SessionWalletConnector,
)
from wallet_session.errors import NetworkUnavailable
from wallet_session.transport import WalletTransport, raise_for_rpc_error

USER_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_KEY = "0x" + "22" * 32
RECIPIENT = "0x000000000000000000000000000000000000dEaD"
TOKEN = "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063"
ETHER = 10**18
GWEI = 10**9

BALANCE_OF = function_abi_to_4byte_selector(ERC20_ABI[0])
TRANSFER = function_abi_to_4byte_selector(ERC20_ABI[1])
IS_VALID_SIGNATURE = function_abi_to_4byte_selector(ERC1271_ABI[0])


class FakeChain:
    """Balances, token ledgers and receipts for a single in-memory chain."""

    def __init__(self, chain_id: int = 137) -> None:
        self.chain_id = chain_id
        self.gas_price = GWEI
        self.block_number = 100
        self.balances: dict[str, int] = {}
        self.tokens: dict[str, dict[str, int]] = {}
        self.code: dict[str, bytes] = {}
        self.erc1271_accepts: set[str] = set()
        self.receipts: dict[str, dict] = {}
        self.pending: list[str] = []
        self.auto_mine = True
        self.sent: list[dict] = []

    def balance(self, address: str) -> int:
        return self.balances.get(address.lower(), 0)

    def token_balance(self, token: str, address: str) -> int:
        return self.tokens.get(token.lower(), {}).get(address.lower(), 0)

    def credit(self, address: str, amount: int) -> None:
        self.balances[address.lower()] = self.balance(address) + amount

    def credit_token(self, token: str, address: str, amount: int) -> None:
        ledger = self.tokens.setdefault(token.lower(), {})
        ledger[address.lower()] = ledger.get(address.lower(), 0) + amount

    def mine(self) -> None:
        for tx_hash in self.pending:
            self.block_number += 1
            self.receipts[tx_hash] = {
                "transactionHash": tx_hash,
                "blockNumber": hex(self.block_number),
                "status": "0x1",
                "gasUsed": hex(21000),
            }
        self.pending = []


class FakeWallet(WalletTransport):
    """EIP-1193 style wallet backed by a FakeChain and a local key."""

    def __init__(
        self,
        chain: FakeChain,
        account: LocalAccount,
        client_version: str = "FakeWallet/1.0",
        signing_account: Optional[LocalAccount] = None,
    ) -> None:
        self.chain = chain
        self.account = account
        self.signing_account = signing_account or account
        self.client_version = client_version
        self.calls: list[str] = []
        self.rejected: set[str] = set()
        self.rpc_errors: dict[str, dict] = {}
        self.failures: dict[str, int] = {}
        self.unreachable = False
        self.authorized = True
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def request(self, method: str, params: Optional[Any] = None) -> Any:
        params = list(params or [])
        self.calls.append(method)
        if self.unreachable:
            raise NetworkUnavailable(f"{method}: connection refused")
        if self.failures.get(method, 0) > 0:
            self.failures[method] -= 1
            raise NetworkUnavailable(f"{method}: connection reset")
        if method in self.rejected:
            raise_for_rpc_error(method, {"code": 4001, "message": "User rejected the request."})
        if method in self.rpc_errors:
            raise_for_rpc_error(method, self.rpc_errors[method])

        if method == "eth_requestAccounts":
            if self.gate is not None:
                await self.gate.wait()
            return [self.account.address]
        if method == "eth_accounts":
            return self._authorized_accounts()
        if method == "web3_clientVersion":
            return self.client_version
        if method == "eth_chainId":
            return hex(self.chain.chain_id)
        if method == "wallet_switchEthereumChain":
            self.chain.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "eth_getBalance":
            return hex(self.chain.balance(params[0]))
        if method == "eth_gasPrice":
            return hex(self.chain.gas_price)
        if method == "eth_getCode":
            return Web3.to_hex(self.chain.code.get(params[0].lower(), b""))
        if method == "eth_call":
            return self._call(params[0])
        if method == "personal_sign":
            signable = encode_defunct(primitive=Web3.to_bytes(hexstr=params[0]))
            return Web3.to_hex(self.signing_account.sign_message(signable).signature)
        if method == "eth_signTypedData_v4":
            signable = encode_typed_data(full_message=json.loads(params[1]))
            return Web3.to_hex(self.signing_account.sign_message(signable).signature)
        if method == "eth_sendTransaction":
            return self._send(params[0])
        if method == "eth_getTransactionReceipt":
            return self.chain.receipts.get(params[0])
        if method == "wc_sessionRequest":
            return {"topic": "relay-topic-1", "accounts": self._authorized_accounts()}
        if method == "wc_sessionDelete":
            return True
        if method == "sequence_connect":
            return {"sessionId": "session-1", "accounts": self._authorized_accounts()}
        if method == "sequence_closeSession":
            return True
        raise_for_rpc_error(method, {"code": -32601, "message": "Method not found"})

    def _authorized_accounts(self) -> list[str]:
        return [self.account.address] if self.authorized else []

    def _call(self, call: dict) -> str:
        to = call["to"].lower()
        data = Web3.to_bytes(hexstr=call["data"])
        if data[:4] == BALANCE_OF:
            (owner,) = decode(["address"], data[4:])
            return Web3.to_hex(encode(["uint256"], [self.chain.token_balance(to, owner)]))
        if data[:4] == IS_VALID_SIGNATURE and to in self.chain.erc1271_accepts:
            return Web3.to_hex(encode(["bytes4"], [ERC1271_MAGIC_VALUE]))
        raise_for_rpc_error("eth_call", {"code": 3, "message": "execution reverted"})

    def _send(self, tx: dict) -> str:
        sender = tx["from"]
        value = int(tx["value"], 16)
        gas = int(tx["gas"], 16)
        if self.chain.balance(sender) < value + gas * self.chain.gas_price:
            raise_for_rpc_error(
                "eth_sendTransaction",
                {"code": -32000, "message": "insufficient funds for gas * price + value"},
            )

        data = Web3.to_bytes(hexstr=tx.get("data", "0x"))
        self.chain.credit(sender, -(value + 21000 * self.chain.gas_price))
        self.chain.credit(tx["to"], value)
        if data[:4] == TRANSFER:
            recipient, amount = decode(["address", "uint256"], data[4:])
            self.chain.credit_token(tx["to"], sender, -amount)
            self.chain.credit_token(tx["to"], recipient, amount)

        self.chain.sent.append(dict(tx))
        tx_hash = Web3.to_hex(keccak(text=f"tx-{len(self.chain.sent)}"))
        self.chain.pending.append(tx_hash)
        if self.chain.auto_mine:
            self.chain.mine()
        return tx_hash

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def account() -> LocalAccount:
    return Account.from_key(USER_KEY)


@pytest.fixture()
def other_account() -> LocalAccount:
    return Account.from_key(OTHER_KEY)


@pytest.fixture()
def chain(account: LocalAccount) -> FakeChain:
    chain = FakeChain(chain_id=137)
    chain.credit(account.address, 10 * ETHER)
    chain.credit_token(TOKEN, account.address, 50 * ETHER)
    return chain


@pytest.fixture()
def wallet(chain: FakeChain, account: LocalAccount) -> FakeWallet:
    return FakeWallet(chain, account)


@pytest.fixture()
def settings(tmp_path: Path) -> WalletSettings:
    return WalletSettings(
        relay_url="http://relay.invalid",
        relay_project_id="test-project",
        session_url="http://session.invalid",
        cache_path=tmp_path / "cached_provider.json",
        poll_interval=0.01,
        read_retries=2,
    )


@pytest.fixture()
def catalog(settings: WalletSettings) -> ProviderCatalog:
    return ProviderCatalog(settings)


@pytest.fixture()
def cache(settings: WalletSettings) -> SessionCache:
    return SessionCache(settings.cache_path)


@pytest.fixture()
def connectors(catalog: ProviderCatalog, wallet: FakeWallet) -> dict:
    return {
        ProviderKind.INJECTED: InjectedWalletConnector(
            catalog.options(ProviderKind.INJECTED), transport=wallet
        ),
        ProviderKind.RELAY: RelayWalletConnector(
            catalog.options(ProviderKind.RELAY), transport=wallet
        ),
        ProviderKind.SESSION: SessionWalletConnector(
            catalog.options(ProviderKind.SESSION), transport=wallet
        ),
    }


@pytest_asyncio.fixture()
async def broker(catalog: ProviderCatalog, cache: SessionCache, connectors: dict) -> ConnectionBroker:
    broker = ConnectionBroker(catalog, cache, connectors, read_retries=2)
    await broker.initialize()
    return broker
