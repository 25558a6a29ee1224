# tests/test_responses.py
"""Unit tests for API Gateway response helpers."""
import json
from datetime import date
from decimal import Decimal

from product_authz.responses import denial_response, json_response

ORIGIN = "https://shop.example.com"


class TestJsonResponse:
    def test_decimals_become_numbers(self):
        body = {"price": Decimal("12.50"), "stock": Decimal("3"), "rating": Decimal("4E+1")}
        result = json.loads(json_response(200, body, ORIGIN)["body"])

        assert result == {"price": 12.5, "stock": 3, "rating": 40}
        assert isinstance(result["stock"], int)
        assert isinstance(result["price"], float)

    def test_other_values_fall_back_to_str(self):
        result = json.loads(json_response(200, {"published": date(2020, 1, 2)}, ORIGIN)["body"])
        assert result == {"published": "2020-01-02"}

    def test_cors_headers(self):
        headers = json_response(200, {}, ORIGIN)["headers"]
        assert headers["Content-Type"] == "application/json"
        assert headers["Access-Control-Allow-Origin"] == ORIGIN


class TestDenialResponse:
    def test_forbidden(self):
        response = denial_response(ORIGIN)
        assert response["statusCode"] == 403
        assert json.loads(response["body"]) == {"message": "Forbidden"}
