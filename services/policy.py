"""
Role -> capability table. Every privileged operation names the capability it needs
instead of comparing numeric user levels.
"""
from __future__ import annotations

from enum import Enum

from models.enums import Role
from services.errors import PermissionDeniedError


class Capability(str, Enum):
    SUBMIT_APPLICATION = "submit_application"
    JOIN_CALL_QUEUE = "join_call_queue"
    WORK_CALL_QUEUE = "work_call_queue"
    REVIEWER_DECISION = "reviewer_decision"
    VIEW_ALL_APPLICATIONS = "view_all_applications"
    SEND_TO_DOCTOR = "send_to_doctor"
    PROCESS_PAYMENT = "process_payment"
    WORK_AGENT_QUEUE = "work_agent_queue"
    VERIFY = "verify"
    MANAGE_PACKAGES = "manage_packages"
    DELETE_PACKAGES = "delete_packages"
    MANAGE_USERS = "manage_users"
    MANAGE_USER_NOTES = "manage_user_notes"
    VIEW_PAYMENTS = "view_payments"
    MANAGE_SITE_CONFIG = "manage_site_config"


_STAFF = frozenset({Role.AGENT, Role.ADMIN, Role.OWNER})
_ADMINS = frozenset({Role.ADMIN, Role.OWNER})

POLICY: dict[Capability, frozenset[Role]] = {
    Capability.SUBMIT_APPLICATION: frozenset(Role),
    Capability.JOIN_CALL_QUEUE: frozenset(Role),
    Capability.WORK_CALL_QUEUE: frozenset({Role.REVIEWER}) | _STAFF,
    Capability.REVIEWER_DECISION: frozenset({Role.REVIEWER}) | _STAFF,
    Capability.VIEW_ALL_APPLICATIONS: _STAFF,
    Capability.SEND_TO_DOCTOR: _STAFF,
    Capability.PROCESS_PAYMENT: _STAFF,
    Capability.WORK_AGENT_QUEUE: _STAFF,
    Capability.VERIFY: _ADMINS,
    Capability.MANAGE_PACKAGES: _ADMINS,
    Capability.DELETE_PACKAGES: frozenset({Role.OWNER}),
    Capability.MANAGE_USERS: _ADMINS,
    Capability.MANAGE_USER_NOTES: _STAFF,
    Capability.VIEW_PAYMENTS: _ADMINS,
    Capability.MANAGE_SITE_CONFIG: frozenset({Role.OWNER}),
}


def can(role: str | Role, capability: Capability) -> bool:
    try:
        role = Role(role)
    except ValueError:
        return False
    return role in POLICY[capability]


def require(role: str | Role, capability: Capability) -> None:
    if not can(role, capability):
        raise PermissionDeniedError(f"Role '{getattr(role, 'value', role)}' may not {capability.value.replace('_', ' ')}")
