"""
Gateway adapter contract shared by the iPaymu and TSM backends.

The payment engine only sees GatewayAdapter: build a GatewayRequest, call
create_transaction(), persist the returned reference. The callback handler
calls verify_callback() with the owner's virtual account.

Wire contract:
- body is canonical JSON (sorted keys, no whitespace)
- Signature header = hex(sha256(VA + ":" + body))
- VA header = virtual account id
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Protocol

import httpx

from ...errors import GatewayFailure
from ...time_utils import utcnow

logger = logging.getLogger(__name__)


def canonical_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str)


def sign(va: str, body: str) -> str:
    return hashlib.sha256(f"{va}:{body}".encode("utf-8")).hexdigest()


def signed_headers(va: str, body: str, timestamp: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "VA": va,
        "Signature": sign(va, body),
        "timestamp": timestamp,
    }


def verify_signature(va: str, raw_body: bytes | str, signature: str | None) -> bool:
    if not va or not signature:
        return False
    body = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
    return hmac.compare_digest(sign(va, body), signature.strip().lower())


@dataclass(frozen=True)
class GatewayItem:
    name: str
    quantity: int
    price: Decimal


@dataclass(frozen=True)
class GatewayRequest:
    """Everything an adapter needs to open one external transaction."""
    reference: str
    amount: Decimal
    payment_method: str
    payment_channel: str
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None
    credentials: Mapping[str, Any]
    items: tuple[GatewayItem, ...] = ()


@dataclass
class GatewayTransaction:
    reference_id: str
    endpoint: str
    request_payload: dict
    response_payload: dict
    request_at: datetime
    response_at: datetime
    extra: dict = field(default_factory=dict)


class GatewayAdapter(Protocol):
    issuer: str

    def create_transaction(self, request: GatewayRequest) -> GatewayTransaction:
        ...

    def verify_callback(self, raw_body: bytes, headers: Mapping[str, str], va: str) -> bool:
        ...


class HttpGateway:
    """Signed JSON POST over httpx; the client timeout is the request deadline."""

    issuer = ""

    def __init__(self, base_url: str, *, timeout: float = 15.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _post(self, path: str, payload: dict, va: str) -> tuple[str, dict, datetime, datetime]:
        url = f"{self.base_url}{path}"
        body = canonical_json(payload)
        request_at = utcnow()
        headers = signed_headers(va, body, request_at.strftime("%Y%m%d%H%M%S"))

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, content=body.encode("utf-8"), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s request to %s failed: %s", self.issuer, url, exc)
            raise GatewayFailure(detail=f"{self.issuer} unreachable")
        response_at = utcnow()

        if response.status_code != 200:
            logger.warning("%s returned HTTP %s for %s", self.issuer, response.status_code, url)
            raise GatewayFailure(detail=f"{self.issuer} returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise GatewayFailure(detail=f"{self.issuer} returned a non-JSON response")
        if not isinstance(data, dict):
            raise GatewayFailure(detail=f"{self.issuer} returned an unexpected response")
        return url, data, request_at, response_at

    def verify_callback(self, raw_body: bytes, headers: Mapping[str, str], va: str) -> bool:
        return verify_signature(va, raw_body, headers.get("Signature"))
