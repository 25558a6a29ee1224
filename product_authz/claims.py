# product_authz/claims.py
"""Turn verified identity claims into a Principal.

Signatures are checked upstream by the API Gateway Cognito authorizer; nothing
here re-verifies them, so only claims that authorizer attached are accepted.
Raw claim maps stop at this module.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from product_authz.errors import MalformedTokenError, MissingPrincipalError

GROUPS_CLAIM = "cognito:groups"
CUSTOM_PREFIX = "custom:"

# claim name -> attribute name
ATTRIBUTE_CLAIMS = {
    "cognito:username": "username",
    "email": "email",
    "token_use": "token_use",
}


@dataclass(frozen=True)
class Principal:
    subject_id: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    groups: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.subject_id, str) or not self.subject_id:
            raise MissingPrincipalError("principal needs a non-empty subject id")
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "groups", tuple(self.groups))


def extract_principal(claims: Any) -> Principal:
    """Build a Principal from a verified claim set.

    Custom attributes keep their ``custom:`` prefix so they can never stand in
    for the allowlisted claims; group membership comes only from
    ``cognito:groups``.
    """
    if not isinstance(claims, Mapping):
        raise MalformedTokenError("claims must be a mapping")

    subject = claims.get("sub")
    if subject is None or (isinstance(subject, str) and not subject.strip()):
        raise MissingPrincipalError("token carries no subject claim")
    if not isinstance(subject, str):
        raise MalformedTokenError("subject claim must be a string")

    attributes: Dict[str, str] = {}
    for claim, name in ATTRIBUTE_CLAIMS.items():
        if claim in claims:
            attributes[name] = _scalar(claim, claims[claim])

    for claim, value in claims.items():
        if isinstance(claim, str) and claim.startswith(CUSTOM_PREFIX) and len(claim) > len(CUSTOM_PREFIX):
            attributes[claim] = _scalar(claim, value)

    return Principal(
        subject_id=subject.strip(),
        attributes=attributes,
        groups=tuple(_groups(claims.get(GROUPS_CLAIM))),
    )


def claims_from_event(event: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the claims the Cognito authorizer attached to a REST proxy event.

    A bearer header alone proves nothing here: without authorizer claims the
    gateway never verified the token, so the request has no principal.
    """
    request_context = event.get("requestContext") or {}
    if not isinstance(request_context, Mapping):
        raise MalformedTokenError("request context is not an object")
    authorizer = request_context.get("authorizer") or {}
    if not isinstance(authorizer, Mapping):
        raise MalformedTokenError("authorizer context is not an object")

    claims = authorizer.get("claims")
    if claims is None:
        raise MissingPrincipalError("no verified claims from the authorizer")
    return claims


def _scalar(claim: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    raise MalformedTokenError(f"claim {claim} has unsupported type {type(value).__name__}")


def _groups(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        # The REST authorizer flattens lists to "[a b]" or "a,b"
        cleaned = value.strip().strip("[]")
        return [g for g in cleaned.replace(",", " ").split() if g]
    if isinstance(value, (list, tuple)):
        if not all(isinstance(g, str) for g in value):
            raise MalformedTokenError("group names must be strings")
        return [g for g in value if g]
    raise MalformedTokenError("groups claim must be a list or string")
