"""Tests for administrative input schemas."""

import pytest
from pydantic import ValidationError

from authz.domain.enums import ApplicationType, HttpAction
from authz.schemas import PolicyBulkCreate, PolicyCreate, RoleCreate, RoleUpdate


def test_policy_create_normalizes_and_defaults() -> None:
    p = PolicyCreate(role="ADMIN", resource="/api/v1/usuarios/", action="get")
    assert p.resource == "/api/v1/usuarios"
    assert p.action is HttpAction.GET
    assert p.application is ApplicationType.BACKEND


@pytest.mark.parametrize("resource", ["/*", "/api/*", "/api/v1/usuarios/*", "/", "/dashboard"])
def test_policy_create_accepts_valid_resources(resource: str) -> None:
    assert PolicyCreate(role="ADMIN", resource=resource, action="GET").resource == resource


@pytest.mark.parametrize("resource", ["api/v1", "/api/*/x", "/api*", "/api/v1/**"])
def test_policy_create_rejects_invalid_resources(resource: str) -> None:
    with pytest.raises(ValidationError):
        PolicyCreate(role="ADMIN", resource=resource, action="GET")


def test_policy_create_rejects_unknown_action_and_bad_role() -> None:
    with pytest.raises(ValidationError):
        PolicyCreate(role="ADMIN", resource="/x", action="TRACE")
    with pytest.raises(ValidationError):
        PolicyCreate(role="admin", resource="/x", action="GET")


def test_policy_bulk_create_requires_items() -> None:
    with pytest.raises(ValidationError):
        PolicyBulkCreate(policies=[])


def test_role_code_pattern() -> None:
    assert RoleCreate(code="SUPER_ADMIN", name="Super").code == "SUPER_ADMIN"
    with pytest.raises(ValidationError):
        RoleCreate(code="Admin1", name="x")
    with pytest.raises(ValidationError):
        RoleUpdate(code="lower")
