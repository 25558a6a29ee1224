# tests/test_claims.py
"""Unit tests for claim extraction."""
import base64
import json

import pytest

from product_authz.claims import Principal, claims_from_event, extract_principal
from product_authz.errors import AuthenticationError, MalformedTokenError, MissingPrincipalError


def _fake_jwt(claims):
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"eyJhbGciOiJSUzI1NiJ9.{payload}.forged-sig"


class TestExtractPrincipal:
    def test_subject_only(self):
        principal = extract_principal({"sub": "u1"})
        assert principal.subject_id == "u1"
        assert dict(principal.attributes) == {}
        assert principal.groups == ()

    def test_known_attributes(self):
        principal = extract_principal({
            "sub": "u1",
            "cognito:username": "alice",
            "email": "alice@example.com",
            "token_use": "id",
            "custom:tenant": "acme",
            "aud": "ignored-client-id",
        })
        assert dict(principal.attributes) == {
            "username": "alice",
            "email": "alice@example.com",
            "token_use": "id",
            "custom:tenant": "acme",
        }

    def test_groups_from_list(self):
        principal = extract_principal({"sub": "u1", "cognito:groups": ["writer", "admin"]})
        assert principal.groups == ("writer", "admin")
        assert "groups" not in principal.attributes

    def test_groups_from_flattened_string(self):
        principal = extract_principal({"sub": "u1", "cognito:groups": "[writer admin]"})
        assert principal.groups == ("writer", "admin")

    def test_group_name_with_comma_kept_whole(self):
        principal = extract_principal({"sub": "u1", "cognito:groups": ["Sales, EMEA", "admin"]})
        assert principal.groups == ("Sales, EMEA", "admin")

    def test_no_groups_when_missing(self):
        assert extract_principal({"sub": "u1"}).groups == ()

    def test_custom_groups_claim_grants_no_roles(self):
        principal = extract_principal({"sub": "u1", "custom:groups": "admin"})
        assert principal.groups == ()
        assert principal.attributes["custom:groups"] == "admin"
        assert "groups" not in principal.attributes

    def test_custom_claims_cannot_shadow_allowlisted_ones(self):
        principal = extract_principal({
            "sub": "u1",
            "email": "real@example.com",
            "custom:email": "spoofed@example.com",
            "custom:username": "root",
            "custom:token_use": "access",
            "cognito:groups": ["reader"],
        })
        assert principal.attributes["email"] == "real@example.com"
        assert "username" not in principal.attributes
        assert "token_use" not in principal.attributes
        assert principal.attributes["custom:username"] == "root"
        assert principal.groups == ("reader",)

    def test_scalar_claims_stringified(self):
        principal = extract_principal({"sub": "u1", "custom:level": 3, "custom:vip": True})
        assert principal.attributes["custom:level"] == "3"
        assert principal.attributes["custom:vip"] == "true"

    def test_missing_subject(self):
        with pytest.raises(MissingPrincipalError):
            extract_principal({"email": "a@example.com"})

    def test_blank_subject(self):
        with pytest.raises(MissingPrincipalError):
            extract_principal({"sub": "   "})

    def test_non_string_subject(self):
        with pytest.raises(MalformedTokenError):
            extract_principal({"sub": 42})

    def test_claims_not_a_mapping(self):
        with pytest.raises(MalformedTokenError):
            extract_principal(["sub", "u1"])

    def test_nested_attribute_rejected(self):
        with pytest.raises(MalformedTokenError):
            extract_principal({"sub": "u1", "custom:profile": {"a": 1}})

    def test_bad_groups_type(self):
        with pytest.raises(MalformedTokenError):
            extract_principal({"sub": "u1", "cognito:groups": 7})

    def test_deterministic(self):
        claims = {"sub": "u1", "cognito:groups": ["a"], "email": "x@y"}
        assert extract_principal(claims) == extract_principal(claims)

    def test_both_failures_are_authentication_errors(self):
        for claims in ({}, "not-a-dict"):
            with pytest.raises(AuthenticationError):
                extract_principal(claims)


class TestPrincipal:
    def test_attributes_are_read_only(self):
        principal = Principal("u1", {"email": "a@b"})
        with pytest.raises(TypeError):
            principal.attributes["email"] = "other"

    def test_source_dict_not_shared(self):
        attrs = {"email": "a@b"}
        principal = Principal("u1", attrs)
        attrs["email"] = "changed"
        assert principal.attributes["email"] == "a@b"

    def test_groups_stored_as_tuple(self):
        assert Principal("u1", groups=["admin"]).groups == ("admin",)

    def test_empty_subject_rejected(self):
        with pytest.raises(MissingPrincipalError):
            Principal("")


class TestClaimsFromEvent:
    def test_authorizer_claims(self):
        event = {
            "requestContext": {"authorizer": {"claims": {"sub": "from-authorizer"}}},
            "headers": {"Authorization": f"Bearer {_fake_jwt({'sub': 'from-header'})}"},
        }
        assert claims_from_event(event)["sub"] == "from-authorizer"

    def test_unverified_bearer_token_is_not_a_principal(self):
        event = {"headers": {"Authorization": f"Bearer {_fake_jwt({'sub': 'admin-user'})}"}}
        with pytest.raises(MissingPrincipalError):
            claims_from_event(event)

    def test_authorizer_without_claims(self):
        event = {"requestContext": {"authorizer": {"principalId": "x"}}, "headers": {}}
        with pytest.raises(MissingPrincipalError):
            claims_from_event(event)

    def test_no_credential(self):
        with pytest.raises(MissingPrincipalError):
            claims_from_event({"headers": {}})

    def test_authorizer_not_an_object(self):
        with pytest.raises(MalformedTokenError):
            claims_from_event({"requestContext": {"authorizer": "claims"}})
