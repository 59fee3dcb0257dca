"""
Contract call encoding.

Calldata is the 4-byte function selector followed by the ABI-encoded
arguments. Encoding is pure: nothing here touches the network.
"""
from typing import Any, Dict, List, Sequence

from eth_abi import decode, encode
from eth_utils import function_abi_to_4byte_selector

# Minimal ERC-20 interface: balanceOf, transfer, decimals, symbol
ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "decimals",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "symbol",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
]

# ERC-1271 contract signature check
ERC1271_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "isValidSignature",
        "inputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "signature", "type": "bytes"},
        ],
        "outputs": [{"name": "magicValue", "type": "bytes4"}],
        "stateMutability": "view",
    },
]
ERC1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")


def _find_function(abi: Sequence[Dict[str, Any]], function_name: str) -> Dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return entry
    raise ValueError(f"Function {function_name} not found in ABI")


def encode_function_call(
    abi: Sequence[Dict[str, Any]], function_name: str, args: Sequence[Any]
) -> bytes:
    """
    ABI-encode a function call.

    Parameters
    ----------
    abi : Sequence[Dict[str, Any]]
        Contract interface description.
    function_name : str
        Function to call.
    args : Sequence[Any]
        Arguments in declaration order.

    Returns
    -------
    bytes
        Selector followed by the encoded arguments.
    """
    func = _find_function(abi, function_name)
    input_types = [inp["type"] for inp in func.get("inputs", [])]
    if len(input_types) != len(args):
        raise ValueError(
            f"{function_name} takes {len(input_types)} arguments, got {len(args)}"
        )

    selector = function_abi_to_4byte_selector(func)
    if not input_types:
        return selector
    return selector + encode(input_types, list(args))


def decode_function_result(
    abi: Sequence[Dict[str, Any]], function_name: str, data: bytes
) -> Any:
    """Decode return data; single outputs come back unwrapped."""
    func = _find_function(abi, function_name)
    output_types = [out["type"] for out in func.get("outputs", [])]
    if not output_types:
        return None

    decoded = decode(output_types, data)
    if len(decoded) == 1:
        return decoded[0]
    return decoded
