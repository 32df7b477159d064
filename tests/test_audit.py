"""
Tests for the operation audit middleware
"""

import pytest
from fastapi import FastAPI
from starlette.requests import Request

from nodedns.audit import MASK, OperationAuditMiddleware
from nodedns.config import AuditSettings


@pytest.fixture
def middleware(tmp_path):
    return OperationAuditMiddleware(
        FastAPI(), audit_settings=AuditSettings(), logs_dir=tmp_path
    )


def make_request(method, path):
    return Request({"type": "http", "method": method, "path": path, "headers": []})


def test_masks_nested_sensitive_fields(middleware):
    data = {
        "revocation_secret": "abc",
        "nested": {"Secret": "def", "alias": "api"},
        "items": [{"token": "ghi"}],
    }

    masked = middleware._mask_sensitive_data(data)

    assert masked == {
        "revocation_secret": MASK,
        "nested": {"Secret": MASK, "alias": "api"},
        "items": [{"token": MASK}],
    }


@pytest.mark.parametrize(
    "method, path, expected",
    [
        ("POST", "/nodes", True),
        ("POST", "/nodes/abc/revoke", True),
        ("POST", "/aliases/reconcile", True),
        ("GET", "/nodes/abc", False),
        ("GET", "/health", False),
    ],
)
def test_should_audit_request(middleware, method, path, expected):
    assert middleware._should_audit_request(make_request(method, path)) is expected


def test_disabled_audit_skips_everything(tmp_path):
    middleware = OperationAuditMiddleware(
        FastAPI(), audit_settings=AuditSettings(enabled=False), logs_dir=tmp_path
    )

    assert middleware.logger is None
    assert middleware._should_audit_request(make_request("POST", "/nodes")) is False
