"""Async HTTP client for the D-Money gateway endpoints."""
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .exceptions import InvalidGatewayResponse, UpstreamError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/apiaccess/payment/gateway/payment/v1/token"
PREORDER_PATH = "/payment/v1/merchant/preOrder"
QUERY_ORDER_PATH = "/apiaccess/payment/gateway/payment/v1/merchant/queryOrder"


def _pretty(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class DMoneyClient:
    """
    Thin wrapper over httpx for the merchant API.

    A fresh AsyncClient is opened per call; nothing is cached between
    requests, including the access token.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _url(self, path: str) -> str:
        return self.settings.api_base.rstrip("/") + path

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "X-APP-KEY": self.settings.app_key,
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        token: Optional[str] = None,
        error_status: int = 400
    ) -> Any:
        """POST JSON and return the decoded body; statuses >= error_status raise."""
        url = self._url(path)
        timeout = httpx.Timeout(self.settings.http_timeout)
        async with httpx.AsyncClient(
            timeout=timeout,
            verify=self.settings.verify_tls,
            transport=self.transport,
        ) as client:
            try:
                r = await client.post(url, json=payload, headers=self._headers(token))
            except httpx.RequestError as e:
                raise UpstreamError(f"Failed to reach D-Money: {e}") from e

        data = _body(r)
        logger.info(f"D-Money {path} responded {r.status_code}: {_pretty(data)}")

        if r.status_code >= error_status:
            raise UpstreamError(
                f"D-Money error {r.status_code}",
                status_code=r.status_code,
                api_response=data,
            )
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected D-Money response: {r.text}", api_response=r.text)
        return data

    async def fetch_token(self) -> Dict[str, Any]:
        logger.info("Requesting authentication token")
        return await self._post(TOKEN_PATH, {"appSecret": self.settings.app_secret})

    async def bearer_token(self) -> str:
        """Access token without any leading "Bearer " prefix."""
        data = await self.fetch_token()
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise InvalidGatewayResponse("No token in authentication response", data)
        return re.sub(r"^Bearer\s+", "", token)

    async def create_preorder(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a signed payment_preorder request.

        Client errors (4xx) are returned rather than raised so the caller can
        inspect the body for prepay_id.
        """
        logger.info(f"Sending payment request to {self._url(PREORDER_PATH)}: {_pretty(payload)}")
        return await self._post(PREORDER_PATH, payload, token=token, error_status=500)

    async def query_order(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post(QUERY_ORDER_PATH, payload, token=token)
