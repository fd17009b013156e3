"""
Unit tests for the staff OperationPolicy.
"""

import pytest

from clinicbook.core.domain import AuthorizationException, ValidationException
from clinicbook.domains.clinic.application.services import DEFAULT_PERMISSIONS, OperationPolicy, StaffRole


@pytest.fixture
def policy() -> OperationPolicy:
    return OperationPolicy()


@pytest.mark.unit
@pytest.mark.parametrize(
    "role,operation,allowed",
    [
        ("reception", "create_appointment", True),
        ("reception", "record_payment", False),
        ("billing", "record_payment", True),
        ("billing", "adjust_paid_invoice", True),
        ("nurse", "adjust_paid_invoice", False),
        ("doctor", "create_prescription", True),
        ("nurse", "create_prescription", False),
        ("reception", "delete_patient", False),
        ("admin", "delete_patient", True),
        ("admin", "anything_else", True),
        ("doctor", "anything_else", False),
    ],
)
def test_is_allowed(policy, role, operation, allowed):
    assert policy.is_allowed(role, operation) is allowed


@pytest.mark.unit
def test_authorize_raises_for_denied_role(policy):
    with pytest.raises(AuthorizationException) as exc_info:
        policy.authorize(StaffRole.RECEPTION, "record_payment")

    assert exc_info.value.details == {"operation": "record_payment", "role": "reception"}


@pytest.mark.unit
def test_unknown_role_is_invalid_input(policy):
    with pytest.raises(ValidationException):
        policy.is_allowed("janitor", "create_appointment")


@pytest.mark.unit
def test_allowed_operations(policy):
    assert policy.allowed_operations("admin") == sorted(DEFAULT_PERMISSIONS)
    assert "record_payment" in policy.allowed_operations(StaffRole.BILLING)
    assert "record_payment" not in policy.allowed_operations(StaffRole.NURSE)


@pytest.mark.unit
def test_custom_permissions_replace_defaults():
    policy = OperationPolicy({"record_payment": frozenset({StaffRole.RECEPTION})})

    assert policy.is_allowed("reception", "record_payment")
    assert not policy.is_allowed("billing", "record_payment")
