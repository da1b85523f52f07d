# reads runtime settings from the environment, once
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration.

    Fields:
      - db_path: sqlite file holding the device cart (and all tables for the sqlite backend)
      - backend: "sqlite" | "supabase", where products/orders/users live
      - supabase_url / supabase_key: project url and anon/service key
      - cart_key: key of the device cart in the key-value store
      - owner_*: bootstrap owner account, created when no users exist
      - strict_transitions: enforce the order status transition table
    """

    db_path: str = "data/biltone.sqlite"
    backend: Literal["sqlite", "supabase"] = "sqlite"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    cart_key: str = "biltone_cart"
    owner_email: str = "owner@biltone.com"
    owner_password: Optional[str] = None
    owner_name: str = "System Owner"
    strict_transitions: bool = False
    debug: bool = False
    log_file: Optional[str] = None


def load_settings() -> Settings:
    backend = (os.getenv("BILTONE_BACKEND") or "sqlite").strip().lower()
    if backend not in ("sqlite", "supabase"):
        raise ValueError(f"Unknown backend {backend!r}, expected sqlite or supabase.")

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")
    if backend == "supabase" and not (supabase_url and supabase_key):
        raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase backend.")

    return Settings(
        db_path=os.getenv("BILTONE_DB_PATH", Settings.db_path),
        backend=backend,
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        cart_key=os.getenv("BILTONE_CART_KEY", Settings.cart_key),
        owner_email=os.getenv("BILTONE_OWNER_EMAIL", Settings.owner_email),
        owner_password=os.getenv("BILTONE_OWNER_PASSWORD") or None,
        owner_name=os.getenv("BILTONE_OWNER_NAME", Settings.owner_name),
        strict_transitions=_flag("BILTONE_STRICT_TRANSITIONS"),
        debug=_flag("DEBUG"),
        log_file=os.getenv("BILTONE_LOG_FILE") or None,
    )
