"""Payment gateway adapters keyed by issuer."""

from flask import current_app

from ...models.payments import ISSUER_IPAYMU, ISSUER_TSM
from .base import (
    GatewayAdapter,
    GatewayItem,
    GatewayRequest,
    GatewayTransaction,
    canonical_json,
    sign,
    verify_signature,
)
from .ipaymu import IpaymuAdapter
from .tsm import TsmAdapter

__all__ = [
    'GatewayAdapter', 'GatewayItem', 'GatewayRequest', 'GatewayTransaction',
    'IpaymuAdapter', 'TsmAdapter',
    'canonical_json', 'sign', 'verify_signature',
    'init_gateways', 'get_adapters',
]


def init_gateways(app) -> None:
    """Install the default adapters; tests replace app.extensions["gateway_adapters"]."""
    app.extensions["gateway_adapters"] = {
        ISSUER_IPAYMU: IpaymuAdapter.from_config(app.config),
        ISSUER_TSM: TsmAdapter.from_config(app.config),
    }


def get_adapters() -> dict:
    return current_app.extensions["gateway_adapters"]
