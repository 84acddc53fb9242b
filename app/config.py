# =============================
# Global Config
# Read once at startup, then passed around explicitly.
# =============================

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

BASE_DIR = Path(__file__).resolve().parent
PROJECT_DIR = BASE_DIR.parent

SERVICE_NAME = "WooCommerce Webhook Receiver"
DEFAULT_CURRENCY_SYMBOL = "£"

ORDER_CREATED = "order-created"
ORDER_UPDATED = "order-updated"
EVENT_TYPES = (ORDER_CREATED, ORDER_UPDATED)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    webhook_secrets: Dict[str, str] = field(default_factory=dict)
    skip_signature_validation: bool = False
    enforce_signature: bool = True
    ack_on_storage_failure: bool = True
    payloads_dir: Path = PROJECT_DIR / "example-payloads"
    orders_dir: Path = PROJECT_DIR / "orders"
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    host: str = "0.0.0.0"
    port: int = 3000
    request_timeout_secs: float = 30.0
    shutdown_drain_secs: float = 10.0

    def secret_for(self, event_type: str) -> str:
        return self.webhook_secrets.get(event_type, "")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (or any mapping, for tests).
    Callers are expected to have run load_dotenv() first.
    """
    env = os.environ if env is None else env

    port_raw = env.get("PORT") or "3000"
    try:
        port = int(port_raw)
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got {port_raw!r}")

    return Settings(
        webhook_secrets={
            ORDER_CREATED: env.get("WC_ORDER_CREATED_SECRET", ""),
            ORDER_UPDATED: env.get("WC_ORDER_UPDATED_SECRET", ""),
        },
        skip_signature_validation=_env_bool(env, "SKIP_SIGNATURE_VALIDATION", False),
        enforce_signature=_env_bool(env, "ENFORCE_SIGNATURE", True),
        ack_on_storage_failure=_env_bool(env, "ACK_ON_STORAGE_FAILURE", True),
        payloads_dir=Path(env.get("PAYLOADS_DIR") or PROJECT_DIR / "example-payloads"),
        orders_dir=Path(env.get("ORDERS_DIR") or PROJECT_DIR / "orders"),
        currency_symbol=env.get("CURRENCY_SYMBOL") or DEFAULT_CURRENCY_SYMBOL,
        host=env.get("HOST") or "0.0.0.0",
        port=port,
        request_timeout_secs=_env_float(env, "REQUEST_TIMEOUT_SECS", 30.0),
        shutdown_drain_secs=_env_float(env, "SHUTDOWN_DRAIN_SECS", 10.0),
    )
