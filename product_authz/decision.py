# product_authz/decision.py
"""Client for the Amazon Verified Permissions decision service."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from product_authz.cache import DecisionCache, cache_key
from product_authz.claims import Principal
from product_authz.config import Settings
from product_authz.errors import DecisionClientError
from product_authz.routes import Action, Resource
from product_authz.verdict import Verdict

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    ConnectTimeoutError,
    ReadTimeoutError,
    EndpointConnectionError,
    ConnectionClosedError,
)


@dataclass(frozen=True)
class AuthorizationRequest:
    principal: Principal
    action: Action
    resource: Resource
    context: Mapping[str, str] = field(default_factory=dict)

    @property
    def cache_key(self) -> str:
        return cache_key(self.principal.subject_id, self.action.value, self.resource.type, self.resource.id)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry on transient transport failures. max_attempts counts the first try."""

    max_attempts: int = 2
    backoff_seconds: float = 0.0


def make_avp_client(settings: Settings):
    config = Config(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        retries={"total_max_attempts": 1},
    )
    return boto3.client("verifiedpermissions", config=config)


class DecisionClient:
    def __init__(
        self,
        client,
        policy_store_id: str,
        namespace: str = "Bookstore",
        cache: Optional[DecisionCache] = None,
        retry: RetryPolicy = RetryPolicy(),
        attempt_budget: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = client
        self.policy_store_id = policy_store_id
        self.namespace = namespace
        self.cache = cache
        self.retry = retry
        self.attempt_budget = attempt_budget
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, client=None) -> "DecisionClient":
        cache = None
        if settings.cache_enabled:
            cache = DecisionCache(settings.cache_ttl, settings.cache_max_entries)
        return cls(
            client if client is not None else make_avp_client(settings),
            settings.policy_store_id,
            namespace=settings.avp_namespace,
            cache=cache,
            attempt_budget=settings.connect_timeout + settings.read_timeout,
        )

    def evaluate(
        self,
        request: AuthorizationRequest,
        remaining_time: Optional[Callable[[], float]] = None,
    ) -> Verdict:
        """Return the verdict for one request. Never raises for decision-service trouble.

        ``remaining_time`` reports the seconds left in the enclosing request; an
        attempt that cannot finish inside it is not started.
        """
        key = request.cache_key
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Decision cache hit for %s on %s", request.action.value, request.resource.type)
                return cached

        attempts = max(1, self.retry.max_attempts)
        for attempt in range(1, attempts + 1):
            if remaining_time is not None and remaining_time() < self.attempt_budget:
                logger.warning("Request budget exhausted before decision attempt %d", attempt)
                return Verdict.INDETERMINATE
            try:
                verdict = self._attempt(request)
            except DecisionClientError as e:
                if e.transient and attempt < attempts:
                    logger.warning("Decision attempt %d failed (%s), retrying", attempt, e.reason)
                    if self.retry.backoff_seconds:
                        self._sleep(self.retry.backoff_seconds)
                    continue
                logger.error("Decision service unavailable: %s (%s)", e, e.reason)
                return Verdict.INDETERMINATE

            if verdict is Verdict.INDETERMINATE:
                logger.error("Decision service returned an unparseable decision")
            elif self.cache is not None:
                self.cache.put(key, verdict)
            return verdict

        return Verdict.INDETERMINATE

    def _attempt(self, request: AuthorizationRequest) -> Verdict:
        try:
            response = self._client.is_authorized(**self.build_input(request))
        except TRANSIENT_ERRORS as e:
            raise DecisionClientError(str(e), reason="transport_failure", transient=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "ClientError")
            raise DecisionClientError(str(e), reason=f"service_error:{code}")
        except BotoCoreError as e:
            raise DecisionClientError(str(e), reason="client_failure")

        if not isinstance(response, Mapping):
            return Verdict.INDETERMINATE
        errors = response.get("errors") or []
        if errors:
            logger.warning("Policy evaluation reported %d error(s)", len(errors))
        return Verdict.parse(response.get("decision"))

    def build_input(self, request: AuthorizationRequest) -> Dict[str, Any]:
        ns = self.namespace
        principal = request.principal
        principal_ref = {"entityType": f"{ns}::User", "entityId": principal.subject_id}
        resource = request.resource

        entity = {
            "identifier": principal_ref,
            "attributes": {k: {"string": v} for k, v in principal.attributes.items()},
            "parents": [{"entityType": f"{ns}::Role", "entityId": g} for g in principal.groups],
        }
        params = {
            "policyStoreId": self.policy_store_id,
            "principal": principal_ref,
            "action": {"actionType": f"{ns}::Action", "actionId": request.action.value},
            # id-less resources are addressed by their type name
            "resource": {"entityType": f"{ns}::{resource.type}", "entityId": resource.id or resource.type},
            "entities": {"entityList": [entity]},
        }
        if request.context:
            params["context"] = {"contextMap": {k: {"string": v} for k, v in request.context.items()}}
        return params

    def describe_policy(self, policy_id: str) -> Dict[str, Any]:
        """Policy lookup for operators; not used on the request path."""
        response = self._client.get_policy(policyStoreId=self.policy_store_id, policyId=policy_id)
        return {k: v for k, v in response.items() if k != "ResponseMetadata"}
