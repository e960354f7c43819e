"""
Request signing for the D-Money gateway.

The gateway verifies every call with RSASSA-PSS over SHA-256, MGF1-SHA256 and
a 32-byte salt. The signed message is the canonical string of the request
parameters:

    appid=A&merch_code=M&method=payment.queryorder&nonce_str=...&version=1.0

Keys are sorted, blank values and the sign/sign_type/biz_content keys are
dropped, and nothing is escaped. Callers must format values (amounts,
timestamps) exactly as they go on the wire before signing.
"""
import base64
import binascii
import logging
from typing import Any, Mapping, Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .exceptions import KeyUnavailable, SigningFailure

logger = logging.getLogger(__name__)

EXCLUDED_KEYS = frozenset({"sign", "sign_type", "biz_content"})
SIGN_TYPE = "SHA256WithRSA"
PSS_SALT_LENGTH = 32

PemData = Union[str, bytes]

# what the gateway treats as blank: ECMAScript WhiteSpace and LineTerminator
BLANK_CHARS = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def _pss_padding() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=PSS_SALT_LENGTH,
    )


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_bytes(pem: PemData) -> bytes:
    return pem.encode("utf-8") if isinstance(pem, str) else pem


def canonicalize(params: Mapping[str, Any]) -> str:
    """Build the canonical string the gateway expects to be signed."""
    filtered = {}
    for key, value in params.items():
        if key in EXCLUDED_KEYS or value is None:
            continue
        text = _to_str(value)
        if not text.strip(BLANK_CHARS):
            continue
        filtered[key] = text
    return "&".join(f"{key}={filtered[key]}" for key in sorted(filtered))


def load_rsa_private_key(private_key_pem: PemData) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(_as_bytes(private_key_pem), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningFailure(f"Private key invalid: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningFailure(
            "Private key is not an RSA key",
            {"key_type": type(key).__name__},
        )
    return key


def sign(params: Mapping[str, Any], private_key_pem: Optional[PemData]) -> str:
    """
    Sign request parameters with RSA-PSS/SHA-256 and return base64 text.

    Args:
        params: Request parameters; not modified
        private_key_pem: Already-resolved PEM key, or None when unavailable

    Raises:
        KeyUnavailable: no key was supplied
        SigningFailure: the key could not be loaded or used for PSS
    """
    if not private_key_pem:
        raise KeyUnavailable()

    raw = canonicalize(params)
    logger.debug(f"Content to sign: {raw}")

    key = load_rsa_private_key(private_key_pem)
    try:
        signature = key.sign(raw.encode("utf-8"), _pss_padding(), hashes.SHA256())
    except ValueError as e:
        # raised when the modulus is too short for SHA-256 plus a 32-byte salt
        raise SigningFailure(
            f"Error generating signature: {e}",
            {"key_size": key.key_size},
        ) from e
    return base64.b64encode(signature).decode()


def verify_signature(
    params: Mapping[str, Any],
    signature: str,
    public_key_pem: PemData
) -> bool:
    """
    Check a base64 signature against the canonical string of params.

    Uses the same PSS parameters as sign(). Returns False for any mismatch,
    including undecodable signatures.
    """
    public_key = serialization.load_pem_public_key(_as_bytes(public_key_pem))
    try:
        raw_signature = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    try:
        public_key.verify(
            raw_signature,
            canonicalize(params).encode("utf-8"),
            _pss_padding(),
            hashes.SHA256(),
        )
    except InvalidSignature:
        return False
    return True
