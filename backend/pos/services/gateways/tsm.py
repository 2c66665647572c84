# Overview: TSM card terminal (applink) adapter.

from __future__ import annotations

import logging

from ...errors import GatewayFailure
from ...models.payments import ISSUER_TSM
from .base import GatewayRequest, GatewayTransaction, HttpGateway

logger = logging.getLogger(__name__)

APPLINK_PATH = "/tph/v1/applink"


class TsmAdapter(HttpGateway):
    issuer = ISSUER_TSM

    @classmethod
    def from_config(cls, config) -> "TsmAdapter":
        return cls(config["TSM_BASE_URL"], timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 15.0))

    def build_payload(self, request: GatewayRequest) -> dict:
        creds = request.credentials
        return {
            "app_code": creds.get("app_code"),
            "merchant_code": creds.get("merchant_code"),
            "terminal_code": creds.get("terminal_code"),
            "serial_number": creds.get("serial_number"),
            "mid": creds.get("mid"),
            "amount": str(request.amount),
            "partner_trx_id": request.reference,
            "payment_method": request.payment_method.upper(),
            "payment_channel": request.payment_channel,
        }

    def create_transaction(self, request: GatewayRequest) -> GatewayTransaction:
        va = request.credentials.get("va")
        if not va:
            raise GatewayFailure(detail="TSM virtual account missing")

        payload = self.build_payload(request)
        url, data, request_at, response_at = self._post(APPLINK_PATH, payload, va)

        try:
            code = int(data.get("code", 0))
        except (TypeError, ValueError):
            code = -1
        if code != 0:
            logger.warning("TSM rejected reference=%s code=%s", request.reference, data.get("code"))
            raise GatewayFailure(detail=str(data.get("message") or "TSM rejected the request"))

        # callbacks are keyed by partner_trx_id, so the payment uuid stays the reference
        result = data.get("data") or {}
        logger.info("TSM applink created reference=%s trx=%s", request.reference, result.get("trx_id"))
        return GatewayTransaction(
            reference_id=request.reference,
            endpoint=url,
            request_payload=payload,
            response_payload=data,
            request_at=request_at,
            response_at=response_at,
            extra=result,
        )
