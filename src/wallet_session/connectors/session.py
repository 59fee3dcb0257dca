"""Smart-contract session wallet connector."""
from ..catalog import ProviderKind
from ..errors import ConnectionUnavailable
from .base import SessionWallet, WalletConnector, WalletSessionHandle, checksum_accounts


class SessionWalletConnector(WalletConnector):
    """Connector for a smart-contract wallet that is reached through a session service."""

    kind = ProviderKind.SESSION

    async def _open(self, prompt: bool) -> SessionWallet:
        result = await self.transport.request(
            "sequence_connect",
            [
                {
                    "app": self.options.extra.get("app_name"),
                    "networkId": self.options.extra.get("default_network"),
                    "prompt": prompt,
                }
            ],
        )
        result = result or {}
        session_id = result.get("sessionId")
        if not session_id:
            raise ConnectionUnavailable("Session wallet did not open a session")

        return SessionWallet(
            transport=self.transport,
            accounts=checksum_accounts(result.get("accounts")),
            session=WalletSessionHandle(self.transport, session_id),
        )
