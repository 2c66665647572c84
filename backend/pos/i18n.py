"""Message catalog for user-facing error text (English and Indonesian)."""

from __future__ import annotations

from typing import Dict

DEFAULT_LANGUAGE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "internal_error": "Internal server error",
        "invalid_input": "Invalid input: {detail}",
        "unauthenticated": "Authentication required",
        "invalid_token": "Invalid or expired token",
        "invalid_credentials": "Invalid email or password",
        "forbidden": "You do not have access to this resource",
        "not_found": "Resource not found",
        "conflict": "Request conflicts with the current state: {detail}",
        "precondition_required": "A prerequisite step is required",
        "insufficient_stock": "Insufficient stock for {product}: requested {requested}, available {available}",
        "gateway_failure": "Payment gateway error: {detail}",
        "outlet_not_found": "Outlet not found",
        "product_not_found": "Product not found",
        "variant_not_found": "Product variant not found",
        "stock_not_found": "Stock not found for {product}",
        "order_not_found": "Order not found",
        "order_item_not_found": "Order item not found",
        "recipe_not_found": "Recipe not found",
        "supplier_not_found": "Supplier not found",
        "purchase_order_not_found": "Purchase order not found",
        "payment_method_not_found": "Payment method not found",
        "user_not_found": "User not found",
        "unknown_reference": "Unknown payment reference",
        "add_on_not_bound": "Add-on {add_on} is not available for product {product}",
        "recipe_missing": "Product {product} has no recipe",
        "payment_method_inactive": "Payment method {method} is not active",
        "signature_mismatch": "Invalid signature",
        "tenancy_violation": "Access to another tenant's data is not allowed",
        "order_already_completed": "Order is already completed",
        "order_not_pending": "Order is {status}",
        "already_received": "Purchase order already received",
        "ipaymu_registration_required": "Please register your iPaymu account first",
        "tsm_registration_required": "Please register your TSM account first",
        "email_queue_full": "Email queue is full, try again later",
        "otp_subject": "Your verification code",
    },
    "id": {
        "internal_error": "Terjadi kesalahan pada server",
        "invalid_input": "Input tidak valid: {detail}",
        "unauthenticated": "Autentikasi diperlukan",
        "invalid_token": "Token tidak valid atau kedaluwarsa",
        "invalid_credentials": "Email atau kata sandi salah",
        "forbidden": "Anda tidak memiliki akses ke sumber daya ini",
        "not_found": "Data tidak ditemukan",
        "conflict": "Permintaan bertentangan dengan status saat ini: {detail}",
        "precondition_required": "Diperlukan langkah sebelumnya",
        "insufficient_stock": "Stok {product} tidak mencukupi: diminta {requested}, tersedia {available}",
        "gateway_failure": "Kesalahan payment gateway: {detail}",
        "outlet_not_found": "Outlet tidak ditemukan",
        "product_not_found": "Produk tidak ditemukan",
        "variant_not_found": "Varian produk tidak ditemukan",
        "stock_not_found": "Stok untuk {product} tidak ditemukan",
        "order_not_found": "Pesanan tidak ditemukan",
        "order_item_not_found": "Item pesanan tidak ditemukan",
        "recipe_not_found": "Resep tidak ditemukan",
        "supplier_not_found": "Supplier tidak ditemukan",
        "purchase_order_not_found": "Purchase order tidak ditemukan",
        "payment_method_not_found": "Metode pembayaran tidak ditemukan",
        "user_not_found": "Pengguna tidak ditemukan",
        "unknown_reference": "Referensi pembayaran tidak dikenal",
        "add_on_not_bound": "Add-on {add_on} tidak tersedia untuk produk {product}",
        "recipe_missing": "Produk {product} belum memiliki resep",
        "payment_method_inactive": "Metode pembayaran {method} tidak aktif",
        "signature_mismatch": "Signature tidak valid",
        "tenancy_violation": "Akses ke data tenant lain tidak diizinkan",
        "order_already_completed": "Pesanan sudah selesai",
        "order_not_pending": "Pesanan berstatus {status}",
        "already_received": "Purchase order sudah diterima",
        "ipaymu_registration_required": "Silakan daftarkan akun iPaymu Anda terlebih dahulu",
        "tsm_registration_required": "Silakan daftarkan akun TSM Anda terlebih dahulu",
        "email_queue_full": "Antrian email penuh, coba lagi nanti",
        "otp_subject": "Kode verifikasi Anda",
    },
}


class _Params(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def select_language(accept_language: str | None) -> str:
    """Pick the best supported language from an Accept-Language header."""
    if not accept_language:
        return DEFAULT_LANGUAGE

    candidates = []
    for index, part in enumerate(accept_language.split(",")):
        pieces = part.strip().split(";")
        tag = pieces[0].strip().lower()
        if not tag:
            continue
        weight = 1.0
        for param in pieces[1:]:
            param = param.strip()
            if param.startswith("q="):
                try:
                    weight = float(param[2:])
                except ValueError:
                    weight = 0.0
        candidates.append((-weight, index, tag.split("-")[0]))

    for _, _, lang in sorted(candidates):
        if lang in MESSAGES:
            return lang
    return DEFAULT_LANGUAGE


def translate(key: str, lang: str = DEFAULT_LANGUAGE, **params) -> str:
    """Localized message for ``key`` with English fallback, then the key itself."""
    template = MESSAGES.get(lang, {}).get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key)
    if template is None:
        return key
    return template.format_map(_Params(params))
