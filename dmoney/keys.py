"""Private key resolution for request signing."""
import logging
from pathlib import Path
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)


def normalize_pem(pem: str) -> str:
    """Turn literal "\\n" sequences (common in env vars) into newlines."""
    return pem.replace("\\n", "\n")


def resolve_private_key(settings: Settings) -> Optional[str]:
    """
    Find the merchant's PEM private key.

    Resolution order:
    1. Inline PEM from PRIVATE_KEY
    2. File at PRIVATE_KEY_PATH

    Returns None when no key is found; a missing or unreadable file is
    logged, not raised, so the service can still start.
    """
    if settings.private_key:
        logger.debug("Private key loaded from environment variable PRIVATE_KEY")
        return normalize_pem(settings.private_key)

    path = Path(settings.private_key_path)
    try:
        key = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Private key not loaded from {path}: {e}")
        return None

    logger.debug(f"Private key loaded from {path}")
    return key
