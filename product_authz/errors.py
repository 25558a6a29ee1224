# product_authz/errors.py
"""Error taxonomy for the authorization pipeline.

Every error carries a short ``reason`` code. The code is what operators see in
the logs; callers only ever see the uniform denial response.
"""


class AuthorizationError(Exception):
    reason = "authorization_error"

    def __init__(self, message="", reason=None):
        super().__init__(message or self.reason)
        if reason:
            self.reason = reason


class AuthenticationError(AuthorizationError):
    reason = "unauthenticated"


class MissingPrincipalError(AuthenticationError):
    reason = "missing_principal"


class MalformedTokenError(AuthenticationError):
    reason = "malformed_token"


class ConfigurationError(AuthorizationError):
    reason = "configuration_error"


class UnknownRouteError(ConfigurationError):
    reason = "unknown_route"


class InvalidRequestError(ConfigurationError):
    reason = "invalid_request"


class DecisionClientError(AuthorizationError):
    """A single attempt against the decision service failed.

    ``transient`` marks transport failures (timeouts, dropped connections)
    that are worth one more attempt.
    """

    reason = "decision_client_error"

    def __init__(self, message="", reason=None, transient=False):
        super().__init__(message, reason)
        self.transient = transient


class PolicyDenied(AuthorizationError):
    reason = "policy_deny"
