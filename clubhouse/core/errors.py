"""Domain error taxonomy.

Services raise these; the handlers in clubhouse.api.errors render them as
``{"error": <code>, "message": <text>}`` with the matching HTTP status.
Unauthenticated and Forbidden are distinct on purpose: 401 means "we don't
know who you are", 403 means "we know, and the answer is no".
"""

from __future__ import annotations


class ClubhouseError(Exception):
    code = "internal_failure"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(ClubhouseError):
    code = "unauthenticated"
    status_code = 401


class Forbidden(ClubhouseError):
    code = "forbidden"
    status_code = 403


class NotFound(ClubhouseError):
    code = "not_found"
    status_code = 404


class InvalidRequest(ClubhouseError):
    code = "invalid_request"
    status_code = 422


class Conflict(ClubhouseError):
    code = "conflict"
    status_code = 409


class InvalidTransition(ClubhouseError):
    code = "invalid_transition"
    status_code = 409


class InternalFailure(ClubhouseError):
    code = "internal_failure"
    status_code = 500
