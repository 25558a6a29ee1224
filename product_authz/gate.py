# product_authz/gate.py
"""Per-request authorization gate.

Start -> ClaimsExtracted -> Normalized -> Decided -> Proceed | Denied

Only an exact ALLOW verdict reaches Proceed. Every other outcome is Denied and
produces the same response, whatever the cause.
"""
from __future__ import annotations

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from product_authz.claims import Principal, claims_from_event, extract_principal
from product_authz.decision import AuthorizationRequest, DecisionClient
from product_authz.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DecisionClientError,
    PolicyDenied,
    UnknownRouteError,
)
from product_authz.responses import denial_response
from product_authz.routes import Action, Resource, RouteTable, request_from_event
from product_authz.verdict import Verdict

logger = logging.getLogger(__name__)


class GateState(str, enum.Enum):
    START = "Start"
    CLAIMS_EXTRACTED = "ClaimsExtracted"
    NORMALIZED = "Normalized"
    DECIDED = "Decided"
    PROCEED = "Proceed"
    DENIED = "Denied"


@dataclass(frozen=True)
class GateResult:
    state: GateState
    principal: Optional[Principal] = None
    action: Optional[Action] = None
    resource: Optional[Resource] = None
    verdict: Optional[Verdict] = None
    cause: Optional[AuthorizationError] = None

    @property
    def allowed(self) -> bool:
        return self.state is GateState.PROCEED


class AuthorizationGate:
    def __init__(self, decision_client: DecisionClient, routes: RouteTable, allowed_origin: str = "*"):
        self.decision_client = decision_client
        self.routes = routes
        self.allowed_origin = allowed_origin

    def authorize(
        self,
        event: Mapping[str, Any],
        remaining_time: Optional[Callable[[], float]] = None,
    ) -> GateResult:
        request_id = (event.get("requestContext") or {}).get("requestId", "-")

        try:
            principal = extract_principal(claims_from_event(event))
        except AuthenticationError as e:
            return self._deny(request_id, e)

        try:
            shape = request_from_event(event)
            action, resource = self.routes.normalize(
                shape.method, shape.template, shape.path_params, shape.query_params
            )
        except ConfigurationError as e:
            return self._deny(request_id, e, principal=principal)

        request = AuthorizationRequest(principal, action, resource, context=shape.query_params)
        try:
            verdict = self.decision_client.evaluate(request, remaining_time=remaining_time)
        except Exception as e:
            logger.exception("Decision client failed for request %s", request_id)
            cause = DecisionClientError(str(e), reason="client_crashed")
            return self._deny(request_id, cause, principal, action, resource)

        if verdict is Verdict.ALLOW:
            logger.info(
                "Request %s allowed: %s %s for %s",
                request_id, action.value, resource.type, principal.subject_id,
            )
            return GateResult(GateState.PROCEED, principal, action, resource, verdict)

        if verdict is Verdict.DENY:
            cause = PolicyDenied(f"{action.value} denied")
        else:
            cause = DecisionClientError("no definitive decision", reason="indeterminate")
        return self._deny(request_id, cause, principal, action, resource, verdict)

    def _deny(self, request_id, cause, principal=None, action=None, resource=None, verdict=None):
        if isinstance(cause, ConfigurationError):
            logger.error("Request %s denied by configuration: %s (%s)", request_id, cause, cause.reason)
        else:
            logger.warning("Request %s denied: %s", request_id, cause.reason)
        return GateResult(GateState.DENIED, principal, action, resource, verdict, cause)

    def denial(self):
        return denial_response(self.allowed_origin)

    def protect(self, method: str, template: str):
        """Decorate a Lambda handler serving ``method template``.

        The route is checked against the table when the module loads, so an
        unmapped function fails its cold start instead of its requests. The
        wrapped handler is called as ``handler(event, context, result)`` only
        on Proceed.
        """
        route = self.routes.lookup(method, template)

        def decorator(handler):
            @functools.wraps(handler)
            def wrapper(event, context):
                shape = request_from_event(event)
                if (shape.method.upper(), shape.template) != route.key:
                    self._deny(
                        (event.get("requestContext") or {}).get("requestId", "-"),
                        UnknownRouteError(f"{route} function received {shape.method} {shape.template}"),
                    )
                    return self.denial()

                result = self.authorize(event, remaining_time=_remaining_time(context))
                if not result.allowed:
                    return self.denial()
                return handler(event, context, result)

            return wrapper

        return decorator


def _remaining_time(context):
    get_millis = getattr(context, "get_remaining_time_in_millis", None)
    if get_millis is None:
        return None
    return lambda: get_millis() / 1000.0
