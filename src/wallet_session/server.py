"""
HTTP surface for the wallet session triggers.

Usage: wallet-session-server --port 8001
"""
import argparse
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from web3 import Web3

from .app import WalletApp
from .connectors import Session
from .errors import WalletError
from .signer import SignedMessage
from .transactions import DEFAULT_GAS_LIMIT, TransactionReceipt


class ConnectBody(BaseModel):
    provider: str


class SignMessageBody(BaseModel):
    message: str


class SignTypedDataBody(BaseModel):
    domain: Dict[str, Any]
    types: Dict[str, List[Dict[str, str]]]
    message: Dict[str, Any]
    primary_type: Optional[str] = Field(default=None, alias="primaryType")


class SendNativeBody(BaseModel):
    to: str
    amount: str = Field(description="Amount in ether, e.g. '1.234'")
    gas_limit: int = Field(default=DEFAULT_GAS_LIMIT, alias="gasLimit")


class SendTokenBody(BaseModel):
    token: str
    to: str
    amount: str = Field(description="Amount in token units, e.g. '5'")
    decimals: int = 18
    gas_limit: int = Field(default=DEFAULT_GAS_LIMIT, alias="gasLimit")


def _parse_units(amount: str, decimals: int) -> int:
    try:
        value = Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {amount}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount}")

    # uint256 needs 78 significant digits
    with localcontext() as ctx:
        ctx.prec = 78
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(scaled)


def _session_json(session: Optional[Session]) -> Optional[Dict[str, Any]]:
    if session is None:
        return None
    return {"provider": session.kind.value, "address": session.address}


def _signed_json(signed: SignedMessage) -> Dict[str, Any]:
    return {
        "address": signed.address,
        "signature": signed.signature_hex,
        "message": Web3.to_hex(signed.message),
        "typedData": signed.typed_data,
    }


def _receipt_json(receipt: TransactionReceipt) -> Dict[str, Any]:
    return {**asdict(receipt), "succeeded": receipt.succeeded}


def create_app(wallet_app: Optional[WalletApp] = None) -> FastAPI:
    """
    Build the FastAPI application around one WalletApp.

    Parameters
    ----------
    wallet_app : Optional[WalletApp]
        The wallet layer to serve; built from the environment when omitted.
    """
    wallet = wallet_app or WalletApp()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await wallet.start()
        yield
        await wallet.stop()

    app = FastAPI(title="Wallet Session Server", lifespan=lifespan)
    app.state.wallet = wallet

    @app.exception_handler(WalletError)
    async def wallet_error_handler(request: Request, exc: WalletError):
        logging.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400, content={"error": "ValueError", "message": str(exc)}
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "session": _session_json(wallet.broker.session)}

    @app.get("/providers")
    async def providers():
        return [
            {"kind": kind.value, "name": wallet.catalog.options(kind).display_name}
            for kind in wallet.available_providers()
        ]

    @app.get("/triggers")
    async def triggers():
        return wallet.triggers()

    @app.post("/connect")
    async def connect(body: ConnectBody):
        session = await wallet.invoke("connect", kind=body.provider)
        return _session_json(session)

    @app.post("/disconnect")
    async def disconnect():
        await wallet.invoke("disconnect")
        return {"session": None}

    @app.get("/chain-id")
    async def chain_id():
        return {"chainId": await wallet.invoke("chain_id")}

    @app.get("/accounts")
    async def accounts():
        return {"accounts": await wallet.invoke("accounts")}

    @app.get("/balance")
    async def balance(address: Optional[str] = None):
        wei = await wallet.invoke("balance", address=address)
        return {"wei": str(wei), "ether": str(Web3.from_wei(wei, "ether"))}

    @app.get("/network")
    async def network():
        return asdict(await wallet.invoke("network"))

    @app.post("/sign-message")
    async def sign_message(body: SignMessageBody):
        return _signed_json(await wallet.invoke("sign_message", message=body.message))

    @app.post("/sign-typed-data")
    async def sign_typed_data(body: SignTypedDataBody):
        signed = await wallet.invoke(
            "sign_typed_data",
            domain=body.domain,
            types=body.types,
            message=body.message,
            primary_type=body.primary_type,
        )
        return _signed_json(signed)

    @app.post("/send-native")
    async def send_native(body: SendNativeBody):
        receipt = await wallet.invoke(
            "send_native",
            to=body.to,
            amount=_parse_units(body.amount, 18),
            gas_limit=body.gas_limit,
        )
        return _receipt_json(receipt)

    @app.post("/send-token")
    async def send_token(body: SendTokenBody):
        receipt = await wallet.invoke(
            "send_token",
            token=body.token,
            to=body.to,
            amount=_parse_units(body.amount, body.decimals),
            gas_limit=body.gas_limit,
        )
        return _receipt_json(receipt)

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Wallet Session Server")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8001, help="Port to run the server on (default: 8001)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.info(f"Wallet Session Server starting on http://{args.host}:{args.port}")

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
