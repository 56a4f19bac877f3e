from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
import os
import uuid

app = FastAPI(title="Mock Payment Gateway", version="1.0.0")
# Comma separated customer emails that always get declined
DECLINED_EMAILS = {e.strip() for e in os.environ.get("DECLINED_EMAILS", "declined@example.com").split(",") if e.strip()}


class Customer(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None


class ChargeBody(BaseModel):
    amount_cents: int
    customer: Customer
    reference: str


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/payments")
def charge(body: ChargeBody):
    if body.customer.email in DECLINED_EMAILS or body.amount_cents <= 0:
        return JSONResponse(
            status_code=402,
            content={"success": False, "status": "failed", "message": "Card declined"},
        )
    return {
        "success": True,
        "status": "success",
        "transaction_id": f"txn_{uuid.uuid4().hex[:16]}",
        "amount_cents": body.amount_cents,
        "message": "Payment processed successfully",
    }
