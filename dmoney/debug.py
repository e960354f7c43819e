"""
Diagnostic server for deployments.

Reports which gateway variables are set and whether the signing key parses,
without ever calling D-Money. Run it beside the main app while setting up a
new environment:

    uvicorn dmoney.debug:app --port 3000
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .exceptions import SigningFailure
from .keys import resolve_private_key
from .signing import load_rsa_private_key

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_debug_app(settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(title="D-Money Shim Debug", version="1.0")
    app.state.settings = settings or get_settings()

    @app.get("/")
    def root(settings: Settings = Depends(get_app_settings)):
        return {
            "status": "OK",
            "message": "Server is working",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "env": {
                "hasAppKey": bool(settings.app_key),
                "hasPrivateKey": bool(settings.private_key),
                "verifyTls": settings.verify_tls,
            },
        }

    @app.get("/test-env")
    def test_env(settings: Settings = Depends(get_app_settings)):
        variables = {
            "APP_KEY": settings.app_key,
            "APP_SECRET": settings.app_secret,
            "MERCH_CODE": settings.merch_code,
            "APPID": settings.appid,
            "API_BASE": settings.api_base,
            "NOTIFY_URL": settings.notify_url,
            "PRIVATE_KEY": settings.private_key,
        }
        return {
            "status": "Environment check",
            "variables": {name: "SET" if value else "NOT SET" for name, value in variables.items()},
        }

    @app.get("/test-key")
    def test_key(settings: Settings = Depends(get_app_settings)):
        key = resolve_private_key(settings)
        if not key or not key.strip():
            return JSONResponse(status_code=400, content={"error": "Private key not set"})

        result = {
            "status": "Private key check",
            "hasBeginTag": "-----BEGIN" in key,
            "hasEndTag": "-----END" in key,
            "keyLength": len(key),
            "preview": key.strip().splitlines()[0],  # header line only
        }
        try:
            result["keySize"] = load_rsa_private_key(key).key_size
            result["loadable"] = True
        except SigningFailure as e:
            logger.warning(f"Private key check failed: {e.message}")
            result["loadable"] = False
            result["loadError"] = e.message
        return result

    return app


app = create_debug_app()
