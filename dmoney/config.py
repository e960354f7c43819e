"""
D-Money shim configuration

Loads merchant credentials and gateway endpoints from environment variables
(or a local .env file). Build one Settings instance at startup and pass it to
whatever needs it.
"""
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Field names match the variable names used by the merchant deployment
    (APP_KEY, APPID, API_BASE, ...); matching is case-insensitive.
    """

    # Merchant credentials issued by D-Money
    app_key: str = ""
    app_secret: str = ""
    merch_code: str = ""
    appid: str = ""
    notify_url: str = ""

    # Gateway endpoints
    api_base: str = ""
    checkout_base_url: str = "https://pgtest.d-money.dj:38443/payment/web/paygate"

    # Signing key: inline PEM wins over the file path
    private_key: Optional[str] = None
    private_key_path: str = "./private_key_pkcs8.pem"

    # Outbound HTTP
    http_timeout: float = 30.0
    verify_tls: bool = True  # only disable against sandbox gateways

    # Order defaults
    trans_currency: str = "DJF"
    default_amount: str = "3000"
    default_title: str = "Commande test"
    timeout_express: str = "120m"
    trade_type: str = "Checkout"
    business_type: str = "BuyGoods"
    language: str = "fr"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "DEBUG"
    log_file: Optional[str] = "app.log"

    # Server
    host: str = "0.0.0.0"
    port: int = 9000

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    def missing_credentials(self) -> List[str]:
        """Names of the required gateway variables that are not set."""
        required = {
            "APP_KEY": self.app_key,
            "APP_SECRET": self.app_secret,
            "MERCH_CODE": self.merch_code,
            "APPID": self.appid,
            "API_BASE": self.api_base,
            "NOTIFY_URL": self.notify_url,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    return Settings()
