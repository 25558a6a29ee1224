"""Request authorization pipeline for the product catalog API."""
from product_authz.claims import Principal, extract_principal
from product_authz.config import Settings
from product_authz.decision import AuthorizationRequest, DecisionClient, RetryPolicy
from product_authz.gate import AuthorizationGate, GateResult, GateState
from product_authz.routes import Action, Resource, RouteTable
from product_authz.verdict import Verdict


def build_gate(settings=None, client=None):
    """Wire a gate from the environment. Call once per process."""
    settings = settings or Settings.from_env()
    return AuthorizationGate(
        DecisionClient.from_settings(settings, client=client),
        RouteTable(),
        allowed_origin=settings.allowed_origin,
    )


__all__ = [
    "Action",
    "AuthorizationGate",
    "AuthorizationRequest",
    "DecisionClient",
    "GateResult",
    "GateState",
    "Principal",
    "Resource",
    "RetryPolicy",
    "RouteTable",
    "Settings",
    "Verdict",
    "build_gate",
    "extract_principal",
]
