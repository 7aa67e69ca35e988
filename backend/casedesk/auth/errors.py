"""
Policy errors: malformed questions vs. legitimate denials.

Two families that callers must never confuse:

    PolicyInputError (400)   caller passed an identifier outside a closed set
                             (role, resource, action, case status)
    AccessDenied / TransitionForbidden (403)
                             a well-formed request the actor may not perform

Every error carries a stable `code` and the HTTP `status_code` the API layer
responds with.
"""

from __future__ import annotations


class PolicyError(Exception):
    code = "POLICY_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Malformed input (integration bugs) ──────────────────────────────────────

class PolicyInputError(PolicyError, ValueError):
    code = "INVALID_POLICY_INPUT"
    status_code = 400


class UnknownRole(PolicyInputError):
    code = "UNKNOWN_ROLE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown role: {value!r}")


class UnknownResource(PolicyInputError):
    code = "UNKNOWN_RESOURCE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown resource: {value!r}")


class InvalidActionForResource(PolicyInputError):
    code = "INVALID_ACTION_FOR_RESOURCE"

    def __init__(self, resource: str, action: object, valid: list[str]):
        self.resource = resource
        self.action = action
        super().__init__(
            f"Action {action!r} is not defined for resource '{resource}'. "
            f"Valid actions: {valid}"
        )


class UnknownCaseStatus(PolicyInputError):
    code = "UNKNOWN_CASE_STATUS"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown case status: {value!r}")


# ── Denials ─────────────────────────────────────────────────────────────────

class AccessDenied(PolicyError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, role: str, resource: str, action: str):
        self.role = role
        self.resource = resource
        self.action = action
        super().__init__(f"Role {role} cannot {action} {resource}")


class TransitionForbidden(PolicyError):
    code = "TRANSITION_FORBIDDEN"
    status_code = 403

    def __init__(self, role: str, from_status: str, to_status: str):
        self.role = role
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Transition not allowed: role={role} {from_status} -> {to_status}"
        )


# ── Request identity ────────────────────────────────────────────────────────

class InvalidOrgHeader(PolicyInputError):
    code = "ORG_HEADER_INVALID"

    def __init__(self):
        super().__init__("Missing or invalid X-Org-Id")


class MissingIdentity(PolicyError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self):
        super().__init__("Missing user identity")
