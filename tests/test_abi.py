"""Tests for contract call encoding."""

from __future__ import annotations

import pytest

from wallet_session.abi import (
    ERC20_ABI,
    ERC1271_ABI,
    ERC1271_MAGIC_VALUE,
    decode_function_result,
    encode_function_call,
)

RECIPIENT = "0x000000000000000000000000000000000000dEaD"


class TestEncodeFunctionCall:
    def test_transfer(self) -> None:
        data = encode_function_call(ERC20_ABI, "transfer", [RECIPIENT, 1000])

        assert data[:4].hex() == "a9059cbb"
        assert len(data) == 4 + 32 + 32
        assert data[4:36] == bytes(12) + bytes.fromhex("000000000000000000000000000000000000dead")
        assert int.from_bytes(data[36:], "big") == 1000

    def test_balance_of_selector(self) -> None:
        assert encode_function_call(ERC20_ABI, "balanceOf", [RECIPIENT])[:4].hex() == "70a08231"

    def test_no_arguments(self) -> None:
        assert encode_function_call(ERC20_ABI, "decimals", []).hex() == "313ce567"

    def test_is_valid_signature_selector_is_magic_value(self) -> None:
        data = encode_function_call(ERC1271_ABI, "isValidSignature", [bytes(32), b"\x01" * 65])
        assert data[:4] == ERC1271_MAGIC_VALUE

    def test_wrong_argument_count(self) -> None:
        with pytest.raises(ValueError):
            encode_function_call(ERC20_ABI, "transfer", [RECIPIENT])

    def test_unknown_function(self) -> None:
        with pytest.raises(ValueError):
            encode_function_call(ERC20_ABI, "approve", [RECIPIENT, 1])


class TestDecodeFunctionResult:
    def test_single_output_unwrapped(self) -> None:
        data = (42).to_bytes(32, "big")
        assert decode_function_result(ERC20_ABI, "balanceOf", data) == 42

    def test_bool_output(self) -> None:
        assert decode_function_result(ERC20_ABI, "transfer", (1).to_bytes(32, "big")) is True
