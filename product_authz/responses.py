# product_authz/responses.py
import json
from decimal import Decimal

ALLOWED_METHODS = "OPTIONS,GET"
ALLOWED_HEADERS = "Content-Type,X-Amz-Date,Authorization"

DENIAL_STATUS = 403
DENIAL_BODY = {"message": "Forbidden"}


def _json_default(value):
    # DynamoDB hands numbers back as Decimal
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return str(value)


def cors_headers(origin):
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }


def json_response(status, body, origin):
    headers = {"Content-Type": "application/json"}
    headers.update(cors_headers(origin))
    return {
        "statusCode": status,
        "headers": headers,
        "body": json.dumps(body, default=_json_default),
    }


def denial_response(origin):
    """The one response every denial cause maps to."""
    return json_response(DENIAL_STATUS, DENIAL_BODY, origin)
