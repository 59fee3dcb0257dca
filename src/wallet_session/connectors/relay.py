"""Relay wallet connector."""
import logging

from ..catalog import ProviderKind
from ..errors import ConnectionUnavailable
from .base import RelayWallet, WalletConnector, checksum_accounts


class RelayWalletConnector(WalletConnector):
    """
    Connector for a wallet negotiated through a relay bridge.

    ``wc_sessionRequest`` pairs with the user's wallet and answers with the
    relay topic and the approved accounts. The topic is kept on the raw
    wallet so the pairing can be deleted on disconnect.
    """

    kind = ProviderKind.RELAY

    async def _open(self, prompt: bool) -> RelayWallet:
        project_id = self.options.extra.get("project_id")
        if not project_id:
            raise ConnectionUnavailable("WalletConnect requires a relay project id")

        result = await self.transport.request(
            "wc_sessionRequest", [{"projectId": project_id, "prompt": prompt}]
        )
        result = result or {}
        topic = result.get("topic")
        if not topic:
            raise ConnectionUnavailable("Relay did not return a session topic")

        logging.info(f"Relay session established on topic {topic}")
        return RelayWallet(
            transport=self.transport,
            accounts=checksum_accounts(result.get("accounts")),
            topic=topic,
        )
