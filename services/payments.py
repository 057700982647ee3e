"""
Payment gateway collaborator. The workflow only looks at success/failure of a charge.
AuthorizeNetGateway charges an Accept.js opaque payment token through the Authorize.Net JSON API.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from config import settings
from services.errors import PaymentError

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://apitest.authorize.net/xml/v1/request.api"
PRODUCTION_URL = "https://api.authorize.net/xml/v1/request.api"
OPAQUE_DATA_DESCRIPTOR = "COMMON.ACCEPT.INAPP.PAYMENT"


@dataclass
class ChargeResult:
    success: bool
    transaction_id: Optional[str] = None
    message: str = ""


class PaymentGateway(Protocol):
    async def charge(
        self,
        amount_cents: int,
        payment_token: str,
        *,
        order_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChargeResult:
        ...


class AuthorizeNetGateway:
    def __init__(
        self,
        api_login_id: str,
        transaction_key: str,
        sandbox: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_login_id = api_login_id
        self.transaction_key = transaction_key
        self.url = SANDBOX_URL if sandbox else PRODUCTION_URL
        self.timeout = timeout
        self._transport = transport

    def _build_request(self, amount_cents: int, payment_token: str, order_id: Optional[str], description: Optional[str]) -> dict:
        tx: dict = {
            "transactionType": "authCaptureTransaction",
            "amount": f"{amount_cents / 100:.2f}",
            "payment": {
                "opaqueData": {
                    "dataDescriptor": OPAQUE_DATA_DESCRIPTOR,
                    "dataValue": payment_token,
                }
            },
        }
        if order_id:
            tx["order"] = {
                "invoiceNumber": order_id[:20],
                "description": (description or "Letter application")[:255],
            }
        return {
            "createTransactionRequest": {
                "merchantAuthentication": {
                    "name": self.api_login_id,
                    "transactionKey": self.transaction_key,
                },
                "transactionRequest": tx,
            }
        }

    async def charge(
        self,
        amount_cents: int,
        payment_token: str,
        *,
        order_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ChargeResult:
        body = self._build_request(amount_cents, payment_token, order_id, description)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
                # Authorize.Net prefixes its JSON with a UTF-8 BOM
                data = json.loads(response.content.decode("utf-8-sig"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Payment gateway request failed: %s", e)
            raise PaymentError(f"Payment processing error: {e}") from e

        tx = data.get("transactionResponse") or {}
        messages = data.get("messages") or {}
        if messages.get("resultCode") == "Ok" and tx.get("responseCode") == "1":
            return ChargeResult(success=True, transaction_id=tx.get("transId"), message="Payment processed successfully")

        message = "Payment failed"
        if tx.get("errors"):
            message = tx["errors"][0].get("errorText", message)
        elif messages.get("message"):
            message = messages["message"][0].get("text", message)
        return ChargeResult(success=False, message=message)


class UnconfiguredGateway:
    """Stand-in used when no gateway credentials are set; every charge is refused."""

    async def charge(self, amount_cents: int, payment_token: str, *, order_id=None, description=None) -> ChargeResult:
        raise PaymentError("Card payments are not configured")


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; tests override it with a fake gateway."""
    if not settings.authorizenet_configured:
        return UnconfiguredGateway()
    return AuthorizeNetGateway(
        settings.authorizenet_api_login_id,
        settings.authorizenet_transaction_key,
        sandbox=settings.authorizenet_sandbox,
        timeout=settings.payment_timeout_seconds,
    )


async def charge_or_raise(
    gateway: PaymentGateway,
    amount_cents: int,
    payment_token: str,
    *,
    order_id: Optional[str] = None,
    description: Optional[str] = None,
) -> ChargeResult:
    """Charge and turn a declined result into PaymentError; callers decide whether to retry."""
    result = await gateway.charge(amount_cents, payment_token, order_id=order_id, description=description)
    if not result.success:
        logger.info("Charge declined for order %s: %s", order_id, result.message)
        raise PaymentError(result.message or "Payment failed")
    return result
