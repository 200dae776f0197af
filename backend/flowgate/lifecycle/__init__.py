# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Lifecycle: workflow definitions, versions, publishing and the audit trail.
"""

from flowgate.lifecycle.models import (
    CreateWorkflowDefinitionRequest,
    CreateWorkflowVersionRequest,
    DefinitionQuery,
    DefinitionStatus,
    Page,
    PublishOutcome,
    PublishWorkflowVersionRequest,
    UpdateWorkflowDefinitionRequest,
    VersionStatus,
    WorkflowDefinition,
    WorkflowPublishAudit,
    WorkflowVersion,
)
from flowgate.lifecycle.versioning import VersionCode, next_version_code
from flowgate.lifecycle.store import DefinitionDocument, JsonWorkflowStore
from flowgate.lifecycle.service import WorkflowDefinitionService, create_workflow_definition_service

__all__ = [
    "CreateWorkflowDefinitionRequest",
    "CreateWorkflowVersionRequest",
    "DefinitionQuery",
    "DefinitionStatus",
    "Page",
    "PublishOutcome",
    "PublishWorkflowVersionRequest",
    "UpdateWorkflowDefinitionRequest",
    "VersionStatus",
    "WorkflowDefinition",
    "WorkflowPublishAudit",
    "WorkflowVersion",
    "VersionCode",
    "next_version_code",
    "DefinitionDocument",
    "JsonWorkflowStore",
    "WorkflowDefinitionService",
    "create_workflow_definition_service",
]
