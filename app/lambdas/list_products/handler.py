# app/lambdas/list_products/handler.py
import logging
import os

import boto3

from product_authz import Settings, build_gate
from product_authz.responses import json_response

settings = Settings.from_env()

logger = logging.getLogger()
logger.setLevel(settings.log_level)

TABLE_NAME = os.environ.get("PRODUCTS_TABLE", "products")

table = boto3.resource("dynamodb").Table(TABLE_NAME)
gate = build_gate(settings)


def _scan_products(limit=None):
    kwargs = {}
    if limit:
        kwargs["Limit"] = limit
    items = []
    while True:
        resp = table.scan(**kwargs)
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key or (limit and len(items) >= limit):
            break
        kwargs["ExclusiveStartKey"] = last_key
    return items[:limit] if limit else items


def _limit(event):
    raw = (event.get("queryStringParameters") or {}).get("limit")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


@gate.protect("GET", "/product")
def lambda_handler(event, context, authorization):
    """List the catalog for a caller the gate has already allowed."""
    logger.info("Listing products for %s", authorization.principal.subject_id)

    products = _scan_products(_limit(event))
    return json_response(200, {"products": products}, settings.allowed_origin)
