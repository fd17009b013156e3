"""
Staff authorization policy.

Maps staff roles to the operations they may call. Applied by the calling
layer before it invokes an engine; the engines themselves do not check roles.
"""

import logging

from clinicbook.core.domain import AuthorizationException, StatusEnum

logger = logging.getLogger(__name__)


class StaffRole(StatusEnum):
    ADMIN = "admin"
    RECEPTION = "reception"
    NURSE = "nurse"
    DOCTOR = "doctor"
    BILLING = "billing"


_FRONT_DESK = frozenset({StaffRole.RECEPTION})
_CLINICAL = frozenset({StaffRole.NURSE, StaffRole.DOCTOR})

DEFAULT_PERMISSIONS: dict[str, frozenset[StaffRole]] = {
    # Booking
    "create_appointment": _FRONT_DESK | _CLINICAL,
    "reschedule_appointment": _FRONT_DESK | _CLINICAL,
    "cancel_appointment": _FRONT_DESK | _CLINICAL,
    "mark_no_show": _FRONT_DESK | _CLINICAL,
    "advance_appointment": _FRONT_DESK | _CLINICAL,
    "reassign_doctor": _FRONT_DESK,
    "assign_room": _FRONT_DESK | _CLINICAL,
    "view_appointment": _FRONT_DESK | _CLINICAL | {StaffRole.BILLING},
    # Billing
    "add_treatment_line": _CLINICAL | {StaffRole.BILLING},
    "adjust_paid_invoice": frozenset({StaffRole.BILLING}),
    "generate_invoice": frozenset({StaffRole.BILLING}),
    "record_payment": frozenset({StaffRole.BILLING}),
    "view_invoice": _FRONT_DESK | {StaffRole.BILLING},
    # Prescriptions
    "create_prescription": frozenset({StaffRole.DOCTOR}),
    "edit_prescription": frozenset({StaffRole.DOCTOR}),
    "view_prescription": _CLINICAL,
    # Registry
    "register_patient": _FRONT_DESK,
    "update_patient": _FRONT_DESK,
    "delete_patient": frozenset(),
    "manage_doctors": frozenset(),
    "manage_catalog": frozenset(),
    "delete_appointment": frozenset(),
    "delete_invoice": frozenset(),
}


class OperationPolicy:
    """
    Role based permission check.

    Admins may call everything; other roles only the operations listed for
    them. Unknown operations are denied to everyone but admins.

    Example:
        ```python
        policy = OperationPolicy()
        policy.authorize("billing", "record_payment")
        ```
    """

    def __init__(self, permissions: dict[str, frozenset[StaffRole]] | None = None):
        self._permissions = dict(permissions or DEFAULT_PERMISSIONS)

    def is_allowed(self, role: StaffRole | str, operation: str) -> bool:
        if not isinstance(role, StaffRole):
            role = StaffRole.from_string(role)
        if role == StaffRole.ADMIN:
            return True
        return role in self._permissions.get(operation, frozenset())

    def authorize(self, role: StaffRole | str, operation: str) -> None:
        """
        Raises:
            AuthorizationException: the role may not call the operation
        """
        if not self.is_allowed(role, operation):
            role_value = role.value if isinstance(role, StaffRole) else str(role)
            logger.warning(f"Role '{role_value}' denied operation '{operation}'")
            raise AuthorizationException(operation=operation, role=role_value)

    def allowed_operations(self, role: StaffRole | str) -> list[str]:
        return sorted(op for op in self._permissions if self.is_allowed(role, op))
