"""
Payload builders for the D-Money merchant API.

Each signed call carries its business fields in biz_content, while the
signature covers those same fields flattened together with the envelope
(method, nonce_str, timestamp, version).
"""
import secrets
import time
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .signing import SIGN_TYPE, sign

API_VERSION = "1.0"
PREORDER_METHOD = "payment_preorder"
QUERY_ORDER_METHOD = "payment.queryorder"


def generate_nonce() -> str:
    return secrets.token_hex(16)


def get_timestamp() -> str:
    """Current time in whole seconds, as the gateway expects it."""
    return str(int(time.time()))


def make_order_id(timestamp: str) -> str:
    return f"{timestamp}001"


def build_signed_request(
    method: str,
    biz_content: Dict[str, Any],
    private_key: Optional[str],
    nonce_str: str,
    timestamp: str
) -> Dict[str, Any]:
    """
    Sign a merchant API call and return the JSON request body.

    The signed parameters are biz_content plus the envelope fields; biz_content
    itself is excluded from the canonical string.
    """
    sign_params = {
        **biz_content,
        "method": method,
        "nonce_str": nonce_str,
        "timestamp": timestamp,
        "version": API_VERSION,
    }
    return {
        "nonce_str": nonce_str,
        "biz_content": biz_content,
        "method": method,
        "version": API_VERSION,
        "sign_type": SIGN_TYPE,
        "timestamp": timestamp,
        "sign": sign(sign_params, private_key),
    }


def preorder_biz_content(
    settings: Settings,
    order_id: str,
    total_amount: Optional[str] = None,
    title: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "trans_currency": settings.trans_currency,
        "total_amount": total_amount or settings.default_amount,
        "merch_order_id": order_id,
        "appid": settings.appid,
        "merch_code": settings.merch_code,
        "timeout_express": settings.timeout_express,
        "trade_type": settings.trade_type,
        "notify_url": settings.notify_url,
        "title": title or settings.default_title,
        "business_type": settings.business_type,
    }


def build_preorder_request(
    settings: Settings,
    private_key: Optional[str],
    order_id: str,
    nonce_str: str,
    timestamp: str,
    total_amount: Optional[str] = None,
    title: Optional[str] = None
) -> Dict[str, Any]:
    biz_content = preorder_biz_content(settings, order_id, total_amount, title)
    return build_signed_request(PREORDER_METHOD, biz_content, private_key, nonce_str, timestamp)


def build_query_request(
    settings: Settings,
    private_key: Optional[str],
    order_id: str,
    nonce_str: str,
    timestamp: str
) -> Dict[str, Any]:
    biz_content = {
        "merch_order_id": order_id,
        "appid": settings.appid,
        "merch_code": settings.merch_code,
    }
    return build_signed_request(QUERY_ORDER_METHOD, biz_content, private_key, nonce_str, timestamp)


def build_checkout_url(
    settings: Settings,
    private_key: Optional[str],
    prepay_id: str,
    nonce_str: str,
    timestamp: str
) -> str:
    """Signed link to the hosted paygate page for a prepay_id."""
    checkout_params = {
        "appid": settings.appid,
        "merch_code": settings.merch_code,
        "nonce_str": nonce_str,
        "prepay_id": prepay_id,
        "timestamp": timestamp,
        "version": API_VERSION,
        "trade_type": settings.trade_type,
        "language": settings.language,
    }
    url = httpx.URL(settings.checkout_base_url, params={
        **checkout_params,
        "sign": sign(checkout_params, private_key),
        "sign_type": SIGN_TYPE,
    })
    return str(url)
