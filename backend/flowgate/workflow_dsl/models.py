# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow DSL Models

Pydantic models for the declarative workflow graph: nodes, edges, run policy,
bindings, and the validation verdict returned by the validators.

The JSON wire shape is camelCase; attributes are snake_case.
"""

from enum import Enum
from typing import List, Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WorkflowMode(str, Enum):
    LINEAR = "LINEAR"
    DAG = "DAG"
    DEBATE = "DEBATE"


class UsageMethod(str, Enum):
    HEADLESS = "HEADLESS"
    COPILOT = "COPILOT"
    ON_DEMAND = "ON_DEMAND"


class TemplateSource(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    COPIED = "COPIED"


class DslStatus(str, Enum):
    """Runtime status stamped inside a DSL snapshot"""
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class EdgeType(str, Enum):
    DATA = "data-edge"
    CONTROL = "control-edge"
    CONDITION = "condition-edge"
    ERROR = "error-edge"


class OnErrorPolicy(str, Enum):
    FAIL_FAST = "FAIL_FAST"
    CONTINUE = "CONTINUE"
    ROUTE_TO_ERROR = "ROUTE_TO_ERROR"


class ValidationStage(str, Enum):
    SAVE = "SAVE"
    PUBLISH = "PUBLISH"

    @classmethod
    def _missing_(cls, value):
        # Stage names are case-insensitive
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class IssueSeverity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class DslModel(BaseModel):
    """Base for DSL models - camelCase on the wire, snake_case in code"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class NodeRuntimePolicy(DslModel):
    """Per-node runtime policy; every field optional so it can act as a patch"""
    timeout_ms: Optional[int] = Field(default=None, ge=1000, le=120000)
    retry_count: Optional[int] = Field(default=None, ge=0, le=5)
    retry_backoff_ms: Optional[int] = Field(default=None, ge=0, le=60000)
    on_error: Optional[OnErrorPolicy] = None


class RunPolicy(DslModel):
    """Workflow-level run policy"""
    model_config = ConfigDict(extra="allow")

    node_defaults: Optional[NodeRuntimePolicy] = None


class WorkflowNode(DslModel):
    """A typed step in the workflow graph. `type` is an open tag."""
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    name: str = Field(min_length=1)
    enabled: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)
    runtime_policy: Optional[NodeRuntimePolicy] = None
    input_bindings: Optional[Dict[str, Any]] = None
    output_schema: Optional[Any] = None


class WorkflowEdge(DslModel):
    """A typed connector between two nodes"""
    id: str = Field(min_length=1)
    from_: str = Field(alias="from", min_length=1)
    to: str = Field(min_length=1)
    edge_type: EdgeType = EdgeType.CONTROL
    condition: Optional[Any] = None


class WorkflowDsl(DslModel):
    """
    The declarative workflow graph of one workflow version.

    Identity fields are optional at the model level so that structural
    validation can report them as missing instead of failing to parse.
    """
    workflow_id: str = ""
    name: str = ""
    mode: Optional[WorkflowMode] = None
    usage_method: Optional[UsageMethod] = None
    version: str = "1.0.0"
    status: DslStatus = DslStatus.DRAFT
    owner_user_id: Optional[str] = None
    template_source: Optional[TemplateSource] = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    run_policy: Optional[RunPolicy] = None
    agent_bindings: List[str] = Field(default_factory=list)
    param_set_bindings: List[str] = Field(default_factory=list)
    data_connector_bindings: List[str] = Field(default_factory=list)
    output_config: Optional[Dict[str, Any]] = None
    experiment_config: Optional[Dict[str, Any]] = None

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-ready camelCase snapshot for storage"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ValidationIssue(DslModel):
    """One defect found in a DSL"""
    code: str
    severity: IssueSeverity = IssueSeverity.ERROR
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None


class ValidationResult(DslModel):
    """Validation verdict: valid unless an ERROR-severity issue is present"""
    valid: bool
    issues: List[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationResult":
        return cls(
            valid=all(issue.severity != IssueSeverity.ERROR for issue in issues),
            issues=list(issues),
        )

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.ERROR]

    def codes(self) -> List[str]:
        return [issue.code for issue in self.issues]

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult.from_issues(self.issues + other.issues)
