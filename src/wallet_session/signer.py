"""Message and typed-data signing, and independent signature verification."""
import copy
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct, encode_typed_data
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import keccak
from web3 import Web3

from .abi import ERC1271_ABI, ERC1271_MAGIC_VALUE, encode_function_call
from .errors import VerificationMismatch, WalletRpcError
from .transport import WalletTransport

if TYPE_CHECKING:
    from .provider import UnifiedProvider

REQUIRED_DOMAIN_FIELDS = ("name", "version", "verifyingContract")

# EIP-712 domain fields in their canonical order
DOMAIN_FIELD_TYPES = {
    "name": "string",
    "version": "string",
    "chainId": "uint256",
    "verifyingContract": "address",
    "salt": "bytes32",
}


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _signature_bytes(signature: Union[str, bytes]) -> bytes:
    if isinstance(signature, str):
        return Web3.to_bytes(hexstr=signature)
    return bytes(signature)


class Signer:
    """
    Signing capability of a connected wallet account.

    Every request here waits on the user inside the wallet; no timeout is
    applied by this class.
    """

    def __init__(self, transport: WalletTransport, address: str):
        self._transport = transport
        self.address = address

    async def sign_message(self, message: bytes) -> bytes:
        signature = await self._transport.request(
            "personal_sign", [Web3.to_hex(message), self.address]
        )
        return _signature_bytes(signature)

    async def sign_typed_data(self, typed_data: Mapping[str, Any]) -> bytes:
        signature = await self._transport.request(
            "eth_signTypedData_v4", [self.address, json.dumps(typed_data)]
        )
        return _signature_bytes(signature)

    async def send_transaction(self, transaction: Mapping[str, Any]) -> str:
        """Hand a transaction to the wallet for signing and broadcast; returns its hash."""
        return await self._transport.request("eth_sendTransaction", [dict(transaction)])


@dataclass(frozen=True)
class SignedMessage:
    """
    A signature together with what was signed and who claims to have signed it.

    ``typed_data`` holds the full EIP-712 payload for typed-data signatures
    and is None for plain messages.
    """

    message: bytes
    signature: bytes
    address: str
    typed_data: Optional[Mapping[str, Any]] = None

    @property
    def signature_hex(self) -> str:
        return Web3.to_hex(self.signature)


def primary_type(types: Mapping[str, List[Mapping[str, str]]]) -> str:
    """Find the one struct type no other struct refers to."""
    structs = [name for name in types if name != "EIP712Domain"]
    referenced = set()
    for name in structs:
        for member in types[name]:
            referenced.add(member["type"].split("[", 1)[0])

    roots = [name for name in structs if name not in referenced]
    if len(roots) != 1:
        raise ValueError(f"Cannot infer primary type from {sorted(structs)}")
    return roots[0]


def _domain_chain_id(value: Any) -> int:
    """Domain chain ids arrive as ints, decimal strings or 0x-prefixed hex."""
    if isinstance(value, str) and value[:2].lower() == "0x":
        return Web3.to_int(hexstr=value)
    return int(value)


def _eip191_digest(signable: SignableMessage) -> bytes:
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


class SignerFacade:
    """Signing operations against the active session, with verification."""

    def __init__(self, provider: "UnifiedProvider"):
        self._provider = provider
        self._signer = provider.get_signer()

    async def sign_message(self, text: Union[str, bytes]) -> SignedMessage:
        """
        Sign raw message bytes with personal_sign.

        Parameters
        ----------
        text : Union[str, bytes]
            Message to sign; text is encoded as UTF-8.

        Returns
        -------
        SignedMessage
            The verified signature.
        """
        message = _to_bytes(text)
        signature = await self._signer.sign_message(message)
        signed = SignedMessage(message=message, signature=signature, address=self._signer.address)

        if not await self.verify(signed.address, message, signature):
            logging.error(f"Signature from {signed.address} failed verification")
            raise VerificationMismatch(f"Message signature does not match {signed.address}")

        logging.info(f"Message signed by {signed.address}: {signed.signature_hex[:20]}...")
        return signed

    async def build_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, List[Mapping[str, str]]],
        message: Mapping[str, Any],
        primary: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Assemble the full EIP-712 payload, binding the domain to the live chain id.
        """
        domain = dict(domain)
        missing = [f for f in REQUIRED_DOMAIN_FIELDS if not domain.get(f)]
        if missing:
            raise ValueError(f"Typed data domain is missing {', '.join(missing)}")

        live_chain_id = await self._provider.get_chain_id()
        requested = domain.get("chainId")
        if requested is not None and _domain_chain_id(requested) != live_chain_id:
            raise ValueError(
                f"Typed data domain chainId {requested} does not match "
                f"the wallet's chain {live_chain_id}"
            )
        domain["chainId"] = live_chain_id

        unknown = set(domain) - set(DOMAIN_FIELD_TYPES)
        if unknown:
            raise ValueError(f"Unsupported domain fields: {sorted(unknown)}")
        domain = {k: domain[k] for k in DOMAIN_FIELD_TYPES if k in domain}

        struct_types = {k: [dict(m) for m in v] for k, v in types.items() if k != "EIP712Domain"}
        full_types = {
            "EIP712Domain": [{"name": k, "type": DOMAIN_FIELD_TYPES[k]} for k in domain],
            **struct_types,
        }
        return {
            "types": full_types,
            "primaryType": primary or primary_type(struct_types),
            "domain": domain,
            "message": copy.deepcopy(dict(message)),
        }

    async def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, List[Mapping[str, str]]],
        message: Mapping[str, Any],
        primary: Optional[str] = None,
    ) -> SignedMessage:
        """
        Sign structured data (EIP-712).

        A domain without ``chainId`` gets the chain the wallet is on right
        now; a ``chainId`` that disagrees with the wallet is refused.
        """
        typed_data = await self.build_typed_data(domain, types, message, primary)
        signature = await self._signer.sign_typed_data(typed_data)
        signed = SignedMessage(
            message=json.dumps(typed_data, sort_keys=True, separators=(",", ":")).encode("utf-8"),
            signature=signature,
            address=self._signer.address,
            typed_data=typed_data,
        )

        if not await self.verify_typed_data(signed.address, typed_data, signature):
            logging.error(f"Typed data signature from {signed.address} failed verification")
            raise VerificationMismatch(f"Typed data signature does not match {signed.address}")

        logging.info(
            f"Typed data signed by {signed.address} on chain {typed_data['domain']['chainId']}"
        )
        return signed

    async def verify(
        self, address: str, message: Union[str, bytes], signature: Union[str, bytes]
    ) -> bool:
        """
        Check that ``signature`` over ``message`` comes from ``address``.

        The signer is recovered from the message and signature; nothing about
        where the signature came from is trusted.
        """
        return await self._verify_signable(
            address, encode_defunct(primitive=_to_bytes(message)), signature
        )

    async def verify_typed_data(
        self, address: str, typed_data: Mapping[str, Any], signature: Union[str, bytes]
    ) -> bool:
        return await self._verify_signable(
            address, encode_typed_data(full_message=dict(typed_data)), signature
        )

    async def _verify_signable(
        self, address: str, signable: SignableMessage, signature: Union[str, bytes]
    ) -> bool:
        try:
            sig = _signature_bytes(signature)
        except ValueError:
            return False

        try:
            recovered = Account.recover_message(signable, signature=sig)
        except (ValueError, TypeError, BadSignature, KeyValidationError) as e:
            logging.debug(f"Signature recovery failed: {e}")
            recovered = None

        if recovered is not None and recovered.lower() == address.lower():
            return True
        return await self._contract_accepts(address, _eip191_digest(signable), sig)

    async def _contract_accepts(self, address: str, digest: bytes, signature: bytes) -> bool:
        """ERC-1271 check for smart-contract wallets; plain accounts have no code."""
        code = await self._provider.get_code(address)
        if not code:
            return False

        data = encode_function_call(ERC1271_ABI, "isValidSignature", [digest, signature])
        try:
            result = await self._provider.call(address, data)
        except WalletRpcError as e:
            logging.info(f"isValidSignature reverted for {address}: {e}")
            return False
        return result[:4] == ERC1271_MAGIC_VALUE
