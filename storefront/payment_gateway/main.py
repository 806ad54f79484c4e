# payment_gateway/main.py
import secrets
from decimal import Decimal, InvalidOperation

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel

app = FastAPI(title="Payment Gateway (dev mock)")

DECLINED_NONCE = "fake-declined-nonce"
METHOD_PREFIXES = {
    "Credit Card": "BT",
    "PayPal": "PP",
    "Cash App": "CASHAPP",
}

# Idempotency-Key -> response body
CHARGES: dict[str, dict] = {}
# transaction id -> settled amount, removed once refunded
SETTLED: dict[str, Decimal] = {}


class ChargeIn(BaseModel):
    amount: str
    currency: str = "USD"
    method: str
    nonce: str | None = None
    reference: str | None = None


class RefundIn(BaseModel):
    transaction_id: str
    amount: str


def _decline(message: str):
    return JSONResponse(status_code=402, content={"success": False, "message": message})


@app.post("/charges")
def create_charge(payload: ChargeIn, idempotency_key: str | None = Header(default=None)):
    if idempotency_key and idempotency_key in CHARGES:
        return CHARGES[idempotency_key]

    try:
        amount = Decimal(payload.amount)
    except InvalidOperation:
        return _decline("Invalid amount")
    if amount <= 0:
        return _decline("Invalid amount")

    prefix = METHOD_PREFIXES.get(payload.method)
    if prefix is None:
        return _decline("Invalid payment method")
    if payload.nonce == DECLINED_NONCE:
        return _decline("Card declined")

    body = {
        "success": True,
        "transaction_id": f"{prefix}{secrets.token_hex(6).upper()}",
        "message": "Charge settled",
    }
    SETTLED[body["transaction_id"]] = amount
    if idempotency_key:
        CHARGES[idempotency_key] = body
    return body


@app.post("/refunds")
def create_refund(payload: RefundIn, idempotency_key: str | None = Header(default=None)):
    if idempotency_key and idempotency_key in CHARGES:
        return CHARGES[idempotency_key]

    settled = SETTLED.get(payload.transaction_id)
    if settled is None:
        return _decline("Unknown or already refunded transaction")
    try:
        amount = Decimal(payload.amount)
    except InvalidOperation:
        return _decline("Invalid amount")
    if amount != settled:
        return _decline("Refund amount does not match the charge")

    del SETTLED[payload.transaction_id]
    body = {
        "success": True,
        "transaction_id": f"RF{secrets.token_hex(6).upper()}",
        "message": "Charge refunded",
    }
    if idempotency_key:
        CHARGES[idempotency_key] = body
    return body
