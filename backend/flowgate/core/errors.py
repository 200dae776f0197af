# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Error hierarchy for flowgate.

Every error carries a numeric status (404 not found, 400 invalid input,
409 state conflict) so callers can tell the failure tiers apart without
matching on exception types.
"""

from typing import Optional


class FlowgateError(Exception):
    """Base exception for all flowgate errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializable summary, e.g. for a caller's error payload."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(FlowgateError):
    """Definition or version absent, or not visible to the caller."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(FlowgateError):
    """Input rejected; `field` names the offending request field when known."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConflictError(FlowgateError):
    """The definition or version is in a state that forbids the operation."""

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=409, details=details)
        self.resource = resource
