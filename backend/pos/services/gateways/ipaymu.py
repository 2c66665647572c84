# Overview: iPaymu direct-payment adapter.

from __future__ import annotations

import logging

from ...errors import GatewayFailure, InvalidInput
from ...models.payments import ISSUER_IPAYMU
from .base import GatewayRequest, GatewayTransaction, HttpGateway

logger = logging.getLogger(__name__)

DIRECT_PAYMENT_PATH = "/api/v2/payment/direct"


class IpaymuAdapter(HttpGateway):
    issuer = ISSUER_IPAYMU

    def __init__(
        self,
        base_url: str,
        *,
        return_url: str = "",
        cancel_url: str = "",
        notify_url: str = "",
        timeout: float = 15.0,
        transport=None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.return_url = return_url
        self.cancel_url = cancel_url
        self.notify_url = notify_url

    @classmethod
    def from_config(cls, config) -> "IpaymuAdapter":
        return cls(
            config["IPAYMU_BASE_URL"],
            return_url=config.get("IPAYMU_RETURN_URL", ""),
            cancel_url=config.get("IPAYMU_CANCEL_URL", ""),
            notify_url=config.get("IPAYMU_NOTIFY_URL", ""),
            timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 15.0),
        )

    def build_payload(self, request: GatewayRequest) -> dict:
        missing = [
            name for name, value in (
                ("customer_name", request.customer_name),
                ("customer_email", request.customer_email),
                ("customer_phone", request.customer_phone),
            ) if not value
        ]
        if missing:
            raise InvalidInput(detail=f"iPaymu payments require {', '.join(missing)}")

        return {
            "name": request.customer_name,
            "email": request.customer_email,
            "phone": request.customer_phone,
            "amount": str(request.amount),
            "notifyUrl": self.notify_url,
            "returnUrl": self.return_url,
            "cancelUrl": self.cancel_url,
            "referenceId": request.reference,
            "expired": 24,
            "paymentMethod": request.payment_method,
            "paymentChannel": request.payment_channel,
            "feeDirection": "BUYER",
            "product": [item.name for item in request.items],
            "qty": [item.quantity for item in request.items],
            "price": [str(item.price) for item in request.items],
        }

    def create_transaction(self, request: GatewayRequest) -> GatewayTransaction:
        va = request.credentials.get("va")
        if not va:
            raise GatewayFailure(detail="iPaymu virtual account missing")

        payload = self.build_payload(request)
        url, data, request_at, response_at = self._post(DIRECT_PAYMENT_PATH, payload, va)

        if data.get("Status") != 200:
            logger.warning("iPaymu rejected reference=%s: %s", request.reference, data.get("Message"))
            raise GatewayFailure(detail=str(data.get("Message") or "iPaymu rejected the request"))

        result = data.get("Data") or {}
        transaction_id = result.get("TransactionId")
        if not transaction_id:
            raise GatewayFailure(detail="iPaymu response missing TransactionId")

        logger.info("iPaymu transaction created reference=%s trx=%s", request.reference, transaction_id)
        return GatewayTransaction(
            reference_id=str(transaction_id),
            endpoint=url,
            request_payload=payload,
            response_payload=data,
            request_at=request_at,
            response_at=response_at,
            extra=result,
        )
