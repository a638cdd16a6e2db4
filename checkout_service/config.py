"""
config.py — Process Configuration

All settings are read once from the environment at startup and held in an
immutable `Settings` object that is passed explicitly to every component.
Nothing in the pricing or assembly code reads the environment.

Required:
    FRONTEND_SHARED_SECRET, SHOPIFY_SHOP, SHOPIFY_ADMIN_TOKEN
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .normalizer import DguRules, SkylightRules
from .pricing import DguRateTable
from .rate_tables import DEFAULT_DGU_RATES


def _clean_env(v: Optional[str]) -> str:
    """Strips whitespace and stray quotes pasted into env files."""
    return (v or "").strip().strip("'").strip('"')


def _split_list(v: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in v.split(",") if item.strip())


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _clean_env(env.get(name))
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _decimal(env: Mapping[str, str], name: str, default: str) -> Decimal:
    raw = _clean_env(env.get(name)) or default
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    shared_secret: str
    shop: str
    admin_token: str
    api_version: str = "2025-10"
    currency: str = "GBP"
    allowed_origins: Tuple[str, ...] = ()
    max_skew_ms: int = 5 * 60 * 1000
    anchor_variants: Mapping[str, str] = field(default_factory=dict)
    dgu_rates: DguRateTable = field(default_factory=lambda: DguRateTable.from_dict(DEFAULT_DGU_RATES))
    dgu_rules: DguRules = field(default_factory=DguRules)
    skylight_rules: SkylightRules = field(default_factory=SkylightRules)
    invoice_poll_attempts: int = 10
    invoice_poll_delay_ms: int = 250
    price_tolerance: Decimal = Decimal("0.10")
    dgu_discount_percent: Decimal = Decimal("0")
    order_tags: Tuple[str, ...] = ("calculator",)
    store_name: str = "RightGlaze"
    log_level: str = "INFO"
    log_file: str = "checkout.log"

    @property
    def graphql_url(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def anchor_for(self, calculator_type: str) -> Optional[str]:
        return self.anchor_variants.get(calculator_type) or None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing or a value is malformed.
        """
        env = os.environ if env is None else env

        required = {
            "FRONTEND_SHARED_SECRET": _clean_env(env.get("FRONTEND_SHARED_SECRET")),
            "SHOPIFY_SHOP": _clean_env(env.get("SHOPIFY_SHOP")),
            "SHOPIFY_ADMIN_TOKEN": _clean_env(env.get("SHOPIFY_ADMIN_TOKEN")),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        shop = required["SHOPIFY_SHOP"]
        shop = shop.replace("https://", "").replace("http://", "").rstrip("/")

        origins = _clean_env(env.get("ALLOWED_ORIGINS")) or _clean_env(env.get("ALLOWED_ORIGIN"))

        anchors: Dict[str, str] = {}
        for calculator_type in ("dgu", "skylight"):
            variant = _clean_env(env.get(f"{calculator_type.upper()}_ANCHOR_VARIANT_ID"))
            if variant:
                anchors[calculator_type] = variant

        table_path = _clean_env(env.get("PRICING_TABLE_PATH"))
        dgu_rates = (DguRateTable.from_json_file(table_path) if table_path
                     else DguRateTable.from_dict(DEFAULT_DGU_RATES))

        discount = _decimal(env, "DGU_DISCOUNT_PERCENT", "0")
        if not Decimal("0") <= discount < Decimal("100"):
            raise ConfigurationError("DGU_DISCOUNT_PERCENT must be between 0 and 100")

        attempts = _int(env, "INVOICE_POLL_ATTEMPTS", 10)
        if attempts < 0:
            raise ConfigurationError("INVOICE_POLL_ATTEMPTS must not be negative")

        return cls(
            shared_secret=required["FRONTEND_SHARED_SECRET"],
            shop=shop,
            admin_token=required["SHOPIFY_ADMIN_TOKEN"],
            api_version=_clean_env(env.get("SHOPIFY_API_VERSION")) or "2025-10",
            currency=(_clean_env(env.get("PRESENTMENT_CURRENCY")) or "GBP").upper(),
            allowed_origins=_split_list(origins),
            max_skew_ms=_int(env, "SIGNATURE_MAX_SKEW_MS", 5 * 60 * 1000),
            anchor_variants=anchors,
            dgu_rates=dgu_rates,
            invoice_poll_attempts=attempts,
            invoice_poll_delay_ms=_int(env, "INVOICE_POLL_DELAY_MS", 250),
            price_tolerance=_decimal(env, "SKYLIGHT_PRICE_TOLERANCE", "0.10"),
            dgu_discount_percent=discount,
            order_tags=_split_list(_clean_env(env.get("ORDER_TAGS")) or "calculator"),
            store_name=_clean_env(env.get("STORE_NAME")) or "RightGlaze",
            log_level=_clean_env(env.get("LOG_LEVEL")) or "INFO",
            log_file=_clean_env(env.get("LOG_FILE")) if "LOG_FILE" in env else "checkout.log",
        )
