"""Merchant-side shim for the D-Money mobile-money gateway."""
from .signing import canonicalize, sign, verify_signature

__version__ = "1.0.0"

__all__ = ["canonicalize", "sign", "verify_signature"]
