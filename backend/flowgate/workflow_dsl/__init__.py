# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow DSL: models, canonicalization, structural validation and reference
extraction. Nothing in this package performs I/O.
"""

from flowgate.workflow_dsl.models import (
    EdgeType,
    IssueSeverity,
    TemplateSource,
    UsageMethod,
    ValidationIssue,
    ValidationResult,
    ValidationStage,
    WorkflowDsl,
    WorkflowEdge,
    WorkflowMode,
    WorkflowNode,
)
from flowgate.workflow_dsl.canonicalizer import canonicalize
from flowgate.workflow_dsl.validation import WorkflowDslValidator, validate_workflow_dsl
from flowgate.workflow_dsl.references import DslReferences, extract_references
from flowgate.workflow_dsl.exceptions import DslSnapshotError, WorkflowValidationError

__all__ = [
    "EdgeType",
    "IssueSeverity",
    "TemplateSource",
    "UsageMethod",
    "ValidationIssue",
    "ValidationResult",
    "ValidationStage",
    "WorkflowDsl",
    "WorkflowEdge",
    "WorkflowMode",
    "WorkflowNode",
    "canonicalize",
    "WorkflowDslValidator",
    "validate_workflow_dsl",
    "DslReferences",
    "extract_references",
    "DslSnapshotError",
    "WorkflowValidationError",
]
