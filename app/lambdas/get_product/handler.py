# app/lambdas/get_product/handler.py
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


@gate.protect("GET", "/product/{book_id}")
def lambda_handler(event, context, authorization):
    book_id = authorization.resource.id
    logger.info("Fetching product %s for %s", book_id, authorization.principal.subject_id)

    item = table.get_item(Key={"book_id": book_id}).get("Item")
    if not item:
        return json_response(404, {"message": "Product not found"}, settings.allowed_origin)
    return json_response(200, item, settings.allowed_origin)
