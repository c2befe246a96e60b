"""Tests for helpdesk.widget.cors."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from helpdesk.widget.cors import cors_error, cors_headers, cors_options, cors_response
from helpdesk.widget.errors import BadRequestError, InvalidSessionError


class TestCorsHeaders:
    def test_default_method_is_post(self):
        assert cors_headers() == {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        }

    def test_multiple_methods(self):
        assert cors_headers("GET", "PATCH")["Access-Control-Allow-Methods"] == "GET, PATCH, OPTIONS"

    def test_methods_uppercased(self):
        assert cors_headers("get")["Access-Control-Allow-Methods"] == "GET, OPTIONS"

    def test_options_not_duplicated(self):
        assert cors_headers("GET", "OPTIONS")["Access-Control-Allow-Methods"] == "GET, OPTIONS"

    def test_never_allows_credentials(self):
        assert "Access-Control-Allow-Credentials" not in cors_headers("GET")


class TestCorsOptions:
    def test_preflight_is_204(self):
        response = cors_options("POST")
        assert response.status_code == 204
        assert response.body == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"


class TestCorsResponse:
    def test_wraps_json_body(self):
        response = cors_response({"token": "abc"})
        assert response.status_code == 200
        assert json.loads(response.body) == {"token": "abc"}
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"

    def test_status_code_and_method(self):
        response = cors_response({"error": "nope"}, status_code=404, method="GET")
        assert response.status_code == 404
        assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"

    def test_method_tuple(self):
        response = cors_response({}, method=("GET", "PATCH"))
        assert response.headers["access-control-allow-methods"] == "GET, PATCH, OPTIONS"

    def test_extra_headers_merged(self):
        response = cors_response({}, headers={"Cache-Control": "no-store"})
        assert response.headers["cache-control"] == "no-store"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_caller_headers_win(self):
        response = cors_response({}, headers={"Access-Control-Allow-Headers": "Content-Type"})
        assert response.headers["access-control-allow-headers"] == "Content-Type"

    def test_encodes_datetimes(self):
        when = datetime(2026, 1, 1, tzinfo=timezone.utc)
        response = cors_response({"at": when})
        assert json.loads(response.body) == {"at": "2026-01-01T00:00:00+00:00"}


class TestCorsError:
    def test_error_body_and_status(self):
        response = cors_error(InvalidSessionError(), method="GET")
        assert response.status_code == 401
        assert json.loads(response.body) == {"error": "Invalid or expired token"}
        assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"

    def test_error_details_included(self):
        response = cors_error(BadRequestError("Invalid search parameters", details=[{"loc": ["limit"]}]))
        assert response.status_code == 400
        assert json.loads(response.body) == {
            "error": "Invalid search parameters",
            "details": [{"loc": ["limit"]}],
        }
