"""
Error hierarchy for the D-Money shim.

Every error raised by the signing core or the gateway client derives from
GatewayError so the HTTP layer can render them with a single handler.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for all shim errors."""

    status_code = 500

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class KeyUnavailable(GatewayError):
    """
    No private key could be resolved.

    Raised at signing time, never at startup.
    """

    def __init__(self, message: str = "Private key not available for signing"):
        super().__init__("dmoney:key:unavailable", message)


class SigningFailure(GatewayError):
    """
    The cryptographic primitive rejected the key or payload.

    Examples:
    - Malformed PEM
    - Key is not RSA
    - Key too small for PSS with a 32-byte salt
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("dmoney:signing:failed", message, details)


class UpstreamError(GatewayError):
    """The gateway answered with an error status or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        api_response: Any = None
    ):
        super().__init__(
            "dmoney:upstream:error",
            message,
            {"status": status_code}
        )
        self.status_code = status_code
        self.api_response = api_response


class InvalidGatewayResponse(GatewayError):
    """
    The gateway answered but the body lacks a required field.

    Examples:
    - Token response without "token"
    - Preorder response without "prepay_id"
    """

    def __init__(self, message: str, api_response: Any = None):
        super().__init__("dmoney:upstream:invalid_response", message)
        self.api_response = api_response
