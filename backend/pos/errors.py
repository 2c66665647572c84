# Overview: Error kinds raised by services and mapped to HTTP responses at the boundary.

"""
Error Kinds

Services raise these; create_app registers one handler that turns any PosError
into {"error": <code>, "message": <localized text>} with the kind's status.

Each error carries a message_key into pos.i18n.MESSAGES plus format params, so
the boundary can localize from Accept-Language. `message` is the English text
used in logs and as the exception string.
"""

from __future__ import annotations


class PosError(Exception):
    """Base for every error the API surfaces to clients."""

    status_code = 500
    code = "internal_error"
    message_key = "internal_error"

    def __init__(self, message: str | None = None, *, payload: dict | None = None, **params):
        self.params = params
        self.payload = payload or {}
        if message is None:
            from .i18n import translate
            message = translate(self.message_key, "en", **params)
        super().__init__(message)
        self.message = message

    def to_dict(self, message: str | None = None) -> dict:
        rv = dict(self.payload)
        rv["error"] = self.code
        rv["message"] = message or self.message
        return rv


# =============================================================================
# KINDS
# =============================================================================

class InvalidInput(PosError):
    status_code = 400
    code = "invalid_input"
    message_key = "invalid_input"


class Unauthenticated(PosError):
    status_code = 401
    code = "unauthenticated"
    message_key = "unauthenticated"


class Forbidden(PosError):
    status_code = 403
    code = "forbidden"
    message_key = "forbidden"


class NotFound(PosError):
    status_code = 404
    code = "not_found"
    message_key = "not_found"


class Conflict(PosError):
    status_code = 409
    code = "conflict"
    message_key = "conflict"


class PreconditionRequired(PosError):
    status_code = 428
    code = "precondition_required"
    message_key = "precondition_required"


class InsufficientStock(PosError):
    status_code = 409
    code = "insufficient_stock"
    message_key = "insufficient_stock"


class GatewayFailure(PosError):
    status_code = 502
    code = "gateway_failure"
    message_key = "gateway_failure"


# =============================================================================
# DOMAIN ERRORS
# =============================================================================

class OutletNotFound(NotFound):
    code = "outlet_not_found"
    message_key = "outlet_not_found"


class ProductNotFound(NotFound):
    code = "product_not_found"
    message_key = "product_not_found"


class VariantNotFound(NotFound):
    code = "variant_not_found"
    message_key = "variant_not_found"


class StockNotFound(NotFound):
    code = "stock_not_found"
    message_key = "stock_not_found"


class OrderNotFound(NotFound):
    code = "order_not_found"
    message_key = "order_not_found"


class OrderItemNotFound(NotFound):
    code = "order_item_not_found"
    message_key = "order_item_not_found"


class RecipeNotFound(NotFound):
    code = "recipe_not_found"
    message_key = "recipe_not_found"


class SupplierNotFound(NotFound):
    code = "supplier_not_found"
    message_key = "supplier_not_found"


class PurchaseOrderNotFound(NotFound):
    code = "purchase_order_not_found"
    message_key = "purchase_order_not_found"


class PaymentMethodNotFound(NotFound):
    code = "payment_method_not_found"
    message_key = "payment_method_not_found"


class UserNotFound(NotFound):
    code = "user_not_found"
    message_key = "user_not_found"


class UnknownReference(NotFound):
    code = "unknown_reference"
    message_key = "unknown_reference"


class AddOnNotBound(InvalidInput):
    code = "add_on_not_bound"
    message_key = "add_on_not_bound"


class RecipeMissing(InvalidInput):
    code = "recipe_missing"
    message_key = "recipe_missing"


class PaymentMethodInactive(InvalidInput):
    code = "payment_method_inactive"
    message_key = "payment_method_inactive"


class SignatureMismatch(Unauthenticated):
    code = "signature_mismatch"
    message_key = "signature_mismatch"


class TenancyViolation(Forbidden):
    code = "tenancy_violation"
    message_key = "tenancy_violation"


class OrderAlreadyCompleted(Conflict):
    code = "order_already_completed"
    message_key = "order_already_completed"


class OrderNotPending(Conflict):
    code = "order_not_pending"
    message_key = "order_not_pending"


class AlreadyReceived(Conflict):
    code = "already_received"
    message_key = "already_received"


class IpaymuRegistrationRequired(PreconditionRequired):
    code = "ipaymu_registration_required"
    message_key = "ipaymu_registration_required"

    def __init__(self, message: str | None = None, **params):
        super().__init__(message, payload={"next": "/api/account/ipaymu"}, **params)


class TsmRegistrationRequired(PreconditionRequired):
    code = "tsm_registration_required"
    message_key = "tsm_registration_required"

    def __init__(self, message: str | None = None, **params):
        super().__init__(message, payload={"next": "/api/account/tsm"}, **params)


class InvalidCredentials(Unauthenticated):
    code = "invalid_credentials"
    message_key = "invalid_credentials"


class InvalidToken(Unauthenticated):
    code = "invalid_token"
    message_key = "invalid_token"


class EmailQueueFull(PosError):
    status_code = 503
    code = "email_queue_full"
    message_key = "email_queue_full"


class MissingActorError(RuntimeError):
    """Raised at flush time when an audited row has no actor attribution."""


class ImmutableRowError(RuntimeError):
    """Raised at flush time when an append-only row is modified."""
