"""Injected wallet connector for wallets reached on a local JSON-RPC bridge."""
from ..catalog import ProviderKind
from .base import InjectedWallet, WalletConnector, checksum_accounts


class InjectedWalletConnector(WalletConnector):
    """
    Connector for an injected wallet (browser extension or desktop wallet).

    The wallet is asked for accounts with ``eth_requestAccounts``, which may
    prompt the user. Silent reconnects use ``eth_accounts`` instead, which
    only returns accounts the wallet has already authorized.
    """

    kind = ProviderKind.INJECTED

    async def _open(self, prompt: bool) -> InjectedWallet:
        method = "eth_requestAccounts" if prompt else "eth_accounts"
        accounts = await self.transport.request(method, [])
        client_version = await self.transport.request("web3_clientVersion", [])
        return InjectedWallet(
            transport=self.transport,
            accounts=checksum_accounts(accounts),
            client_version=str(client_version or ""),
        )

    async def is_session_wallet(self) -> bool:
        """Whether the injected wallet is itself a smart-contract session wallet."""
        client_version = await self.transport.request("web3_clientVersion", [])
        return "sequence" in str(client_version or "").lower()
