# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Lifecycle Models

Records owned by the lifecycle service (definitions, versions, publish
audits) and the request models its operations accept.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator

from flowgate.workflow_dsl.models import TemplateSource, UsageMethod, WorkflowMode


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DefinitionStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class VersionStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class PublishOperation(str, Enum):
    PUBLISH = "PUBLISH"


# =============================================================================
# RECORDS
# =============================================================================

class WorkflowDefinition(BaseModel):
    """A named, owned workflow and its lifecycle status"""
    id: str = Field(default_factory=lambda: new_id("wfd"))
    workflow_id: str
    name: str
    description: Optional[str] = None
    mode: WorkflowMode
    usage_method: Optional[UsageMethod] = None
    status: DefinitionStatus = DefinitionStatus.DRAFT
    is_active: bool = False
    owner_user_id: str
    template_source: TemplateSource = TemplateSource.PRIVATE
    latest_version_code: Optional[str] = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    def readable_by(self, owner_user_id: str) -> bool:
        return self.owner_user_id == owner_user_id or self.template_source == TemplateSource.PUBLIC


class WorkflowVersion(BaseModel):
    """An immutable DSL snapshot with its own status"""
    id: str = Field(default_factory=lambda: new_id("wfv"))
    workflow_definition_id: str
    version_code: str
    status: VersionStatus = VersionStatus.DRAFT
    dsl_snapshot: Dict[str, Any]
    changelog: Optional[str] = None
    created_by_user_id: str
    published_by_user_id: Optional[str] = None
    published_at: Optional[str] = None
    created_at: str = Field(default_factory=utc_now)


class WorkflowPublishAudit(BaseModel):
    """Append-only record of one publish"""
    id: str = Field(default_factory=lambda: new_id("wfa"))
    workflow_definition_id: str
    workflow_version_id: str
    operation: PublishOperation = PublishOperation.PUBLISH
    published_version_code: str
    archived_version_ids: List[str] = Field(default_factory=list)
    archived_version_codes: List[str] = Field(default_factory=list)
    draft_version_id: str
    draft_version_code: str
    comment: Optional[str] = None
    published_by_user_id: str
    published_at: str = Field(default_factory=utc_now)


# =============================================================================
# REQUESTS
# =============================================================================

class CreateWorkflowDefinitionRequest(BaseModel):
    workflow_id: str = Field(pattern=r"^[a-zA-Z0-9_-]{3,100}$")
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=500)
    mode: WorkflowMode
    usage_method: UsageMethod = UsageMethod.ON_DEMAND
    template_source: TemplateSource = TemplateSource.PRIVATE
    dsl_snapshot: Optional[Dict[str, Any]] = None
    changelog: Optional[str] = None


class CreateWorkflowVersionRequest(BaseModel):
    dsl_snapshot: Dict[str, Any]
    changelog: Optional[str] = None


class UpdateWorkflowDefinitionRequest(BaseModel):
    """Editable metadata only; status moves through publish and remove"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=500)
    usage_method: Optional[UsageMethod] = None


class PublishWorkflowVersionRequest(BaseModel):
    version_id: Optional[str] = None
    version_code: Optional[str] = None
    comment: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def require_target(self) -> "PublishWorkflowVersionRequest":
        if not (self.version_id or self.version_code):
            raise ValueError("version_id or version_code is required")
        return self


class DefinitionQuery(BaseModel):
    keyword: Optional[str] = None
    mode: Optional[WorkflowMode] = None
    usage_method: Optional[UsageMethod] = None
    status: Optional[DefinitionStatus] = None
    include_public: bool = True
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# =============================================================================
# RESULTS
# =============================================================================

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20


class PublishOutcome(BaseModel):
    """Everything a successful publish changed"""
    published_version: WorkflowVersion
    draft_version: WorkflowVersion
    archived_versions: List[WorkflowVersion] = Field(default_factory=list)
    audit: WorkflowPublishAudit
