# product_authz/config.py
"""Runtime settings injected by the deployment as environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from product_authz.errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    policy_store_id: str
    allowed_origin: str = "*"
    user_pool_id: str = ""
    stage: str = "prod"
    log_level: str = "INFO"
    service_name: str = "product"
    metrics_namespace: str = ""
    avp_namespace: str = "Bookstore"
    connect_timeout: float = 1.0
    read_timeout: float = 2.0
    cache_ttl: float = 30.0
    cache_max_entries: int = 1024

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl > 0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        policy_store_id = env.get("POLICY_STORE_ID", "").strip()
        if not policy_store_id:
            raise ConfigurationError("POLICY_STORE_ID is not set", reason="missing_policy_store")

        return cls(
            policy_store_id=policy_store_id,
            allowed_origin=env.get("ALLOWED_ORIGIN", "*"),
            user_pool_id=env.get("USER_POOL_ID", ""),
            stage=env.get("STAGE", "prod"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            service_name=env.get("POWERTOOLS_SERVICE_NAME", "product"),
            metrics_namespace=env.get("POWERTOOLS_METRICS_NAMESPACE", ""),
            avp_namespace=env.get("AVP_NAMESPACE", "Bookstore"),
            connect_timeout=_number(env, "DECISION_CONNECT_TIMEOUT", 1.0),
            read_timeout=_number(env, "DECISION_READ_TIMEOUT", 2.0),
            cache_ttl=_number(env, "DECISION_CACHE_TTL", 30.0),
            cache_max_entries=int(_number(env, "DECISION_CACHE_MAX_ENTRIES", 1024)),
        )


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", reason="invalid_setting")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative", reason="invalid_setting")
    return value
