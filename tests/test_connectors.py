"""Tests for the per-kind wallet connectors."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from wallet_session.catalog import ProviderCatalog, ProviderKind
from wallet_session.config import WalletSettings
from wallet_session.connectors import (
    InjectedWallet,
    InjectedWalletConnector,
    RelayWalletConnector,
    SessionWalletConnector,
)
from wallet_session.errors import ConnectionRejected, ConnectionUnavailable, NetworkUnavailable
from wallet_session.transport import HttpWalletTransport, WalletTransport, raise_for_rpc_error

ADDRESS = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"


class ScriptedTransport(WalletTransport):
    """Answers each method with a canned result."""

    def __init__(self, answers: dict, unreachable: tuple = ()):
        self.answers = answers
        self.unreachable = unreachable
        self.requests: list = []

    async def request(self, method: str, params: Optional[Any] = None) -> Any:
        self.requests.append((method, params))
        if method in self.unreachable:
            raise NetworkUnavailable(f"{method}: connection refused")
        return self.answers.get(method)


class TestInjectedConnector:
    @pytest.mark.asyncio
    async def test_accounts_are_checksummed(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport(
            {"eth_requestAccounts": [ADDRESS], "web3_clientVersion": "Frame/0.6"}
        )
        connector = InjectedWalletConnector(catalog.options(ProviderKind.INJECTED), transport=transport)
        wallet = await connector.connect()

        assert isinstance(wallet, InjectedWallet)
        assert wallet.accounts == ("0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1",)
        assert wallet.client_version == "Frame/0.6"
        assert wallet.kind is ProviderKind.INJECTED
        assert wallet.get_signer().address == wallet.accounts[0]

    @pytest.mark.asyncio
    async def test_no_accounts_when_prompting_is_rejection(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport({"eth_requestAccounts": []})
        connector = InjectedWalletConnector(catalog.options(ProviderKind.INJECTED), transport=transport)
        with pytest.raises(ConnectionRejected):
            await connector.connect(prompt=True)

    @pytest.mark.asyncio
    async def test_no_accounts_when_silent_is_unavailable(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport({"eth_accounts": []})
        connector = InjectedWalletConnector(catalog.options(ProviderKind.INJECTED), transport=transport)
        with pytest.raises(ConnectionUnavailable):
            await connector.connect(prompt=False)
        assert transport.requests[0][0] == "eth_accounts"

    def test_http_transport_built_from_endpoint(self, catalog: ProviderCatalog) -> None:
        connector = InjectedWalletConnector(catalog.options(ProviderKind.INJECTED))
        assert isinstance(connector.transport, HttpWalletTransport)
        assert connector.transport.endpoint_uri == "http://127.0.0.1:1248"


class TestRelayConnector:
    @pytest.mark.asyncio
    async def test_request_carries_project_id(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport(
            {"wc_sessionRequest": {"topic": "t1", "accounts": [ADDRESS]}}
        )
        connector = RelayWalletConnector(catalog.options(ProviderKind.RELAY), transport=transport)
        wallet = await connector.connect(prompt=False)

        assert wallet.topic == "t1"
        assert transport.requests[0] == (
            "wc_sessionRequest",
            [{"projectId": "test-project", "prompt": False}],
        )

    @pytest.mark.asyncio
    async def test_missing_topic(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport({"wc_sessionRequest": {"accounts": [ADDRESS]}})
        connector = RelayWalletConnector(catalog.options(ProviderKind.RELAY), transport=transport)
        with pytest.raises(ConnectionUnavailable):
            await connector.connect()

    @pytest.mark.asyncio
    async def test_no_accounts_deletes_topic(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport({"wc_sessionRequest": {"topic": "t2", "accounts": []}})
        connector = RelayWalletConnector(catalog.options(ProviderKind.RELAY), transport=transport)
        with pytest.raises(ConnectionUnavailable):
            await connector.connect(prompt=False)
        assert transport.requests[-1] == ("wc_sessionDelete", [{"topic": "t2"}])

    @pytest.mark.asyncio
    async def test_failed_cleanup_keeps_connect_error(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport(
            {"wc_sessionRequest": {"topic": "t3", "accounts": []}},
            unreachable=("wc_sessionDelete",),
        )
        connector = RelayWalletConnector(catalog.options(ProviderKind.RELAY), transport=transport)
        with pytest.raises(ConnectionRejected):
            await connector.connect()
        assert [m for m, _ in transport.requests] == ["wc_sessionRequest", "wc_sessionDelete"]

    def test_no_endpoint(self) -> None:
        catalog = ProviderCatalog(WalletSettings())
        connector = RelayWalletConnector(catalog.options(ProviderKind.RELAY))
        with pytest.raises(ConnectionUnavailable):
            connector.transport


class TestSessionConnector:
    @pytest.mark.asyncio
    async def test_session_handle(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport(
            {"sequence_connect": {"sessionId": "s-9", "accounts": [ADDRESS]}}
        )
        connector = SessionWalletConnector(catalog.options(ProviderKind.SESSION), transport=transport)
        wallet = await connector.connect()

        assert wallet.session.session_id == "s-9"
        assert transport.requests[0][1] == [
            {"app": "Web3Modal Demo Dapp", "networkId": "polygon", "prompt": True}
        ]

        await wallet.disconnect_session()
        await wallet.disconnect_session()
        assert wallet.session.closed
        assert [m for m, _ in transport.requests].count("sequence_closeSession") == 1

    @pytest.mark.asyncio
    async def test_no_session_opened(self, catalog: ProviderCatalog) -> None:
        connector = SessionWalletConnector(
            catalog.options(ProviderKind.SESSION), transport=ScriptedTransport({})
        )
        with pytest.raises(ConnectionUnavailable):
            await connector.connect()

    @pytest.mark.asyncio
    async def test_no_accounts_closes_session(self, catalog: ProviderCatalog) -> None:
        transport = ScriptedTransport({"sequence_connect": {"sessionId": "s-1", "accounts": []}})
        connector = SessionWalletConnector(catalog.options(ProviderKind.SESSION), transport=transport)
        with pytest.raises(ConnectionRejected):
            await connector.connect()
        assert [m for m, _ in transport.requests] == ["sequence_connect", "sequence_closeSession"]
        assert transport.requests[-1][1] == ["s-1"]

    @pytest.mark.asyncio
    async def test_wallet_error_is_unavailable(self, catalog: ProviderCatalog) -> None:
        class FailingTransport(ScriptedTransport):
            async def request(self, method: str, params: Optional[Any] = None) -> Any:
                raise_for_rpc_error(method, {"code": -32603, "message": "Internal error"})

        connector = SessionWalletConnector(
            catalog.options(ProviderKind.SESSION), transport=FailingTransport({})
        )
        with pytest.raises(ConnectionUnavailable):
            await connector.connect()
