"""
Tests for the permission catalog.
"""

import pytest
from fleet_backend.app.core.permissions import (
    ALL_PERMISSIONS,
    ROLE_PERMISSIONS,
    Permission,
    base_permissions,
    effective_permissions,
    unknown_permissions,
    validate_catalog,
)
from fleet_backend.app.models.enums import Role


def test_every_role_has_an_entry():
    assert set(ROLE_PERMISSIONS) == set(Role)


def test_admin_holds_every_permission():
    assert base_permissions(Role.ADMIN) == ALL_PERMISSIONS


def test_tokens_follow_resource_action_pattern():
    for token in ALL_PERMISSIONS:
        resource, _, action = token.partition(":")
        assert resource and action, token


def test_dispatcher_base_set():
    permissions = base_permissions(Role.DISPATCHER)
    assert "assignments:create" in permissions
    assert "assignments:end" in permissions
    assert "vehicles:update" in permissions
    assert "vehicles:delete" not in permissions
    assert "drivers:delete" not in permissions
    assert "profiles:create" not in permissions


def test_user_is_read_only():
    for token in base_permissions(Role.USER):
        assert token.endswith(":read"), token


def test_explicit_grants_extend_the_role():
    permissions = effective_permissions(Role.DISPATCHER, ["vehicles:delete"])
    assert "vehicles:delete" in permissions
    assert base_permissions(Role.DISPATCHER) < permissions


@pytest.mark.parametrize("role", list(Role))
def test_effective_set_is_a_monotonic_union(role):
    grants = ["audit:read", "documents:delete"]
    effective = effective_permissions(role, grants)
    assert base_permissions(role) <= effective
    assert set(grants) <= effective
    assert effective == base_permissions(role) | set(grants)


def test_no_grants_means_base_set():
    assert effective_permissions(Role.USER, None) == base_permissions(Role.USER)
    assert effective_permissions(Role.USER, []) == base_permissions(Role.USER)


def test_role_may_be_given_as_stored_value():
    assert base_permissions("manager") == base_permissions(Role.MANAGER)


def test_unknown_permissions_reported_in_order():
    tokens = ["vehicles:read", "vehicles:fly", "payroll:read"]
    assert unknown_permissions(tokens) == ["vehicles:fly", "payroll:read"]
    assert unknown_permissions([p.value for p in Permission]) == []


def test_catalog_with_missing_role_is_rejected():
    table = dict(ROLE_PERMISSIONS)
    del table[Role.USER]
    with pytest.raises(RuntimeError, match="user"):
        validate_catalog(table)


def test_catalog_with_unknown_permission_is_rejected():
    table = dict(ROLE_PERMISSIONS)
    table[Role.USER] = frozenset({"vehicles:read", "vehicles:teleport"})
    with pytest.raises(RuntimeError, match="vehicles:teleport"):
        validate_catalog(table)
