# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow DSL Exceptions

Raised by the lifecycle service when a DSL fails validation or a stored
snapshot can no longer be read back.
"""

from typing import List, Optional

from flowgate.core.errors import FlowgateError, ValidationError

from .models import ValidationIssue, ValidationStage


class WorkflowValidationError(ValidationError):
    """DSL rejected by structural or governance validation"""
    def __init__(self, issues: List[ValidationIssue], stage: ValidationStage,
                 message: Optional[str] = None):
        self.issues = list(issues)
        self.stage = ValidationStage(stage)
        codes = sorted({issue.code for issue in self.issues})
        message = message or f"Workflow DSL failed {self.stage.value} validation: {', '.join(codes)}"
        super().__init__(
            message,
            field="dsl",
            details={
                "stage": self.stage.value,
                "issues": [issue.model_dump(mode="json", by_alias=True) for issue in self.issues],
            },
        )

    def codes(self) -> List[str]:
        return [issue.code for issue in self.issues]


class DslSnapshotError(FlowgateError):
    """A stored DSL snapshot no longer parses"""
    def __init__(self, version_id: str, reason: str):
        self.version_id = version_id
        super().__init__(
            f"Stored DSL snapshot of version '{version_id}' is invalid: {reason}",
            status_code=400,
            details={"version_id": version_id},
        )
