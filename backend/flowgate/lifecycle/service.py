# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Definition Service

Owns the definition and version lifecycle:

    version:     DRAFT -> PUBLISHED -> ARCHIVED
    definition:  DRAFT -> ACTIVE -> ARCHIVED

Every save re-runs structural and governance-lite validation, and publish
re-runs the full PUBLISH validation on the stored snapshot. The publish
transition itself commits as one unit of work.
"""

import copy
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from flowgate.core.config import Config, get_config
from flowgate.core.errors import ConflictError, NotFoundError, ValidationError
from flowgate.core.logging import get_audit_logger, get_service_logger, log_event
from flowgate.governance.catalog import load_registry_catalog
from flowgate.governance.validator import GovernanceValidator
from flowgate.workflow_dsl.canonicalizer import canonicalize
from flowgate.workflow_dsl.exceptions import DslSnapshotError, WorkflowValidationError
from flowgate.workflow_dsl.models import (
    TemplateSource,
    ValidationResult,
    ValidationStage,
    WorkflowDsl,
)
from flowgate.workflow_dsl.validation import WorkflowDslValidator, schema_issues

from .models import (
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
    utc_now,
)
from .store import DefinitionDocument, JsonWorkflowStore
from .versioning import INITIAL_VERSION, successor_version_code

logger = get_service_logger("workflow_definition")


class WorkflowDefinitionService:
    """
    Manages workflow definitions, their versions and the publish audit trail.

    Responsibilities:
    - Create definitions and save draft versions (SAVE validation)
    - Publish versions (PUBLISH validation + atomic state transition)
    - Archive definitions
    - Read-side listing with owner/PUBLIC visibility
    """

    def __init__(self, store: JsonWorkflowStore, governance: GovernanceValidator,
                 config: Optional[Config] = None):
        self.store = store
        self.governance = governance
        self.config = config or get_config()
        self.validator = WorkflowDslValidator(self.config.output_node_types)
        logger.info(f"WorkflowDefinitionService initialized with store: {store.base_dir}")

    # =========================================================================
    # ACCESS CHECKS
    # =========================================================================

    async def _load_readable(self, owner_user_id: str, definition_id: str) -> DefinitionDocument:
        document = await self.store.load(definition_id)
        if document is None or not document.definition.readable_by(owner_user_id):
            raise NotFoundError("WorkflowDefinition", definition_id)
        return document

    async def _load_editable(self, owner_user_id: str, definition_id: str) -> DefinitionDocument:
        document = await self.store.load(definition_id)
        self._ensure_editable(document, owner_user_id, definition_id)
        return document

    def _ensure_editable(self, document: Optional[DefinitionDocument], owner_user_id: str,
                         definition_id: str) -> None:
        if document is None or document.definition.owner_user_id != owner_user_id:
            raise NotFoundError("WorkflowDefinition", definition_id)
        if document.definition.status == DefinitionStatus.ARCHIVED:
            raise ConflictError(
                f"Workflow definition '{definition_id}' is archived",
                resource="WorkflowDefinition",
            )

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _canonicalize(self, raw_dsl: Optional[Dict[str, Any]], definition: WorkflowDefinition) -> WorkflowDsl:
        try:
            return canonicalize(
                raw_dsl,
                workflow_id=definition.workflow_id,
                name=definition.name,
                mode=definition.mode,
                usage_method=definition.usage_method,
                owner_user_id=definition.owner_user_id,
                template_source=definition.template_source,
                config=self.config,
            )
        except PydanticValidationError as e:
            raise WorkflowValidationError(schema_issues(e), ValidationStage.SAVE) from e

    async def _ensure_valid(self, dsl: WorkflowDsl, owner_user_id: str, stage: ValidationStage,
                            definition_id: Optional[str] = None) -> ValidationResult:
        """Structural + governance validation; raises on any ERROR issue"""
        result = self.validator.validate(dsl, stage)
        governance = await self.governance.validate(
            dsl, owner_user_id, stage, current_definition_id=definition_id,
        )
        result = result.merge(governance)
        if not result.valid:
            log_event(
                logger, "workflow.dsl.rejected", level="WARNING",
                workflow_id=dsl.workflow_id, stage=stage.value, codes=sorted(set(result.codes())),
            )
            raise WorkflowValidationError(result.issues, stage)
        return result

    def validate_dsl(self, dsl: Union[WorkflowDsl, Dict[str, Any]],
                     stage: Union[ValidationStage, str] = ValidationStage.SAVE) -> ValidationResult:
        """Structural validation only; never raises"""
        return self.validator.validate(dsl, stage)

    # =========================================================================
    # DEFINITIONS
    # =========================================================================

    async def create(self, owner_user_id: str,
                     request: CreateWorkflowDefinitionRequest) -> WorkflowDefinition:
        """Create a definition (DRAFT) with its first draft version 1.0.0"""
        if await self.store.find_by_workflow_id(request.workflow_id) is not None:
            raise ValidationError(f"Workflow '{request.workflow_id}' already exists", field="workflow_id")

        definition = WorkflowDefinition(
            workflow_id=request.workflow_id,
            name=request.name,
            description=request.description,
            mode=request.mode,
            usage_method=request.usage_method,
            owner_user_id=owner_user_id,
            template_source=request.template_source,
            latest_version_code=str(INITIAL_VERSION),
        )
        dsl = self._canonicalize(request.dsl_snapshot, definition)
        await self._ensure_valid(dsl, owner_user_id, ValidationStage.SAVE)

        version = WorkflowVersion(
            workflow_definition_id=definition.id,
            version_code=str(INITIAL_VERSION),
            dsl_snapshot=dsl.to_snapshot(),
            changelog=request.changelog or "Initial draft",
            created_by_user_id=owner_user_id,
        )
        await self.store.create(DefinitionDocument(definition=definition, versions=[version]))

        log_event(
            logger, "workflow.definition.created",
            definition_id=definition.id, workflow_id=definition.workflow_id,
            owner_user_id=owner_user_id, mode=definition.mode.value,
        )
        return definition

    async def list_definitions(self, owner_user_id: str,
                               query: Optional[DefinitionQuery] = None) -> Page[WorkflowDefinition]:
        """Own definitions, plus PUBLIC ones unless `include_public` is off"""
        query = query or DefinitionQuery()
        keyword = (query.keyword or "").strip().lower()

        matches = []
        for document in await self.store.list_documents():
            definition = document.definition
            is_own = definition.owner_user_id == owner_user_id
            is_public = definition.template_source == TemplateSource.PUBLIC
            if not (is_own or (query.include_public and is_public)):
                continue
            if query.mode and definition.mode != query.mode:
                continue
            if query.usage_method and definition.usage_method != query.usage_method:
                continue
            if query.status and definition.status != query.status:
                continue
            if keyword and keyword not in definition.name.lower() \
                    and keyword not in definition.workflow_id.lower():
                continue
            matches.append(definition)

        matches.sort(key=lambda definition: definition.updated_at, reverse=True)
        start = (query.page - 1) * query.page_size
        return Page[WorkflowDefinition](
            items=matches[start:start + query.page_size],
            total=len(matches),
            page=query.page,
            page_size=query.page_size,
        )

    async def get_definition(self, owner_user_id: str, definition_id: str) -> WorkflowDefinition:
        document = await self._load_readable(owner_user_id, definition_id)
        return document.definition

    async def update_definition(self, owner_user_id: str, definition_id: str,
                                request: UpdateWorkflowDefinitionRequest) -> WorkflowDefinition:
        """Edit name, description or usage method of an owned, non-archived definition"""
        changes = request.model_dump(exclude_none=True)
        async with self.store.unit_of_work(definition_id) as staged:
            self._ensure_editable(staged, owner_user_id, definition_id)
            for field_name, value in changes.items():
                setattr(staged.definition, field_name, value)
            staged.definition.updated_at = utc_now()

        logger.info(f"Updated workflow definition {definition_id}: {', '.join(sorted(changes)) or 'no changes'}")
        return staged.definition

    async def remove(self, owner_user_id: str, definition_id: str) -> WorkflowDefinition:
        """Archive a definition. Archiving twice is a no-op."""
        async with self.store.unit_of_work(definition_id) as staged:
            if staged.definition.owner_user_id != owner_user_id:
                raise NotFoundError("WorkflowDefinition", definition_id)
            if staged.definition.status != DefinitionStatus.ARCHIVED:
                staged.definition.status = DefinitionStatus.ARCHIVED
                staged.definition.is_active = False
                staged.definition.updated_at = utc_now()

        log_event(logger, "workflow.definition.archived", definition_id=definition_id, owner_user_id=owner_user_id)
        return staged.definition

    # =========================================================================
    # VERSIONS
    # =========================================================================

    async def list_versions(self, owner_user_id: str, definition_id: str) -> List[WorkflowVersion]:
        """Versions of a readable definition, newest first"""
        document = await self._load_readable(owner_user_id, definition_id)
        return list(reversed(document.versions))

    async def create_version(self, owner_user_id: str, definition_id: str,
                             request: CreateWorkflowVersionRequest) -> WorkflowVersion:
        """Save a new DRAFT version; its code is the next patch of the latest code"""
        document = await self._load_editable(owner_user_id, definition_id)
        dsl = self._canonicalize(request.dsl_snapshot, document.definition)
        await self._ensure_valid(dsl, owner_user_id, ValidationStage.SAVE, definition_id)

        async with self.store.unit_of_work(definition_id) as staged:
            self._ensure_editable(staged, owner_user_id, definition_id)
            version_code = successor_version_code(
                staged.definition.latest_version_code,
                [version.version_code for version in staged.versions],
            )
            version = WorkflowVersion(
                workflow_definition_id=definition_id,
                version_code=version_code,
                dsl_snapshot=dsl.to_snapshot(),
                changelog=request.changelog or "Saved draft",
                created_by_user_id=owner_user_id,
            )
            staged.versions.append(version)
            staged.definition.latest_version_code = version_code
            staged.definition.updated_at = utc_now()

        log_event(
            logger, "workflow.version.created",
            definition_id=definition_id, version_id=version.id, version_code=version_code,
        )
        return version

    def _ensure_publishable(self, version: WorkflowVersion) -> None:
        if version.status == VersionStatus.PUBLISHED:
            raise ConflictError(
                f"Workflow version '{version.version_code}' is already published",
                resource="WorkflowVersion",
            )

    async def publish_version(self, owner_user_id: str, definition_id: str,
                              request: PublishWorkflowVersionRequest) -> PublishOutcome:
        """
        Publish one version.

        Validation runs first against the stored snapshot. Only when it passes
        does a single unit of work archive the previously published versions,
        publish the target, seed a successor draft from it, append the audit
        row and activate the definition.

        The unit of work refuses to commit when the definition changed after
        validation, so of two concurrent publishes only the first one wins.
        """
        document = await self._load_editable(owner_user_id, definition_id)
        target = document.find_version(request.version_id, request.version_code)
        if target is None:
            raise NotFoundError("WorkflowVersion", request.version_id or request.version_code)
        self._ensure_publishable(target)
        validated_at = document.definition.updated_at

        try:
            dsl = WorkflowDsl.model_validate(target.dsl_snapshot)
        except PydanticValidationError as e:
            raise DslSnapshotError(target.id, str(e)) from e
        await self._ensure_valid(dsl, owner_user_id, ValidationStage.PUBLISH, definition_id)

        async with self.store.unit_of_work(definition_id) as staged:
            self._ensure_editable(staged, owner_user_id, definition_id)
            published = staged.find_version(version_id=target.id)
            if published is None:
                raise NotFoundError("WorkflowVersion", target.id)
            self._ensure_publishable(published)
            if staged.definition.updated_at != validated_at:
                raise ConflictError(
                    f"Workflow definition '{definition_id}' changed while publishing, retry the publish",
                    resource="WorkflowDefinition",
                )
            now = utc_now()

            archived = []
            for version in staged.versions_with_status(VersionStatus.PUBLISHED):
                if version.id != published.id:
                    version.status = VersionStatus.ARCHIVED
                    archived.append(version)

            published.status = VersionStatus.PUBLISHED
            published.published_at = now
            published.published_by_user_id = owner_user_id

            draft = WorkflowVersion(
                workflow_definition_id=definition_id,
                version_code=successor_version_code(
                    published.version_code,
                    [version.version_code for version in staged.versions],
                ),
                dsl_snapshot=copy.deepcopy(published.dsl_snapshot),
                changelog=f"Draft created after publishing {published.version_code}",
                created_by_user_id=owner_user_id,
            )
            staged.versions.append(draft)

            audit = WorkflowPublishAudit(
                workflow_definition_id=definition_id,
                workflow_version_id=published.id,
                published_version_code=published.version_code,
                archived_version_ids=[version.id for version in archived],
                archived_version_codes=[version.version_code for version in archived],
                draft_version_id=draft.id,
                draft_version_code=draft.version_code,
                comment=request.comment,
                published_by_user_id=owner_user_id,
                published_at=now,
            )
            staged.audits.append(audit)

            staged.definition.status = DefinitionStatus.ACTIVE
            staged.definition.is_active = True
            staged.definition.latest_version_code = draft.version_code
            staged.definition.updated_at = now

        log_event(
            get_audit_logger(), "workflow.version.published",
            definition_id=definition_id,
            workflow_id=staged.definition.workflow_id,
            version_id=published.id,
            version_code=published.version_code,
            archived_version_codes=audit.archived_version_codes,
            draft_version_code=draft.version_code,
            published_by=owner_user_id,
        )
        return PublishOutcome(
            published_version=published,
            draft_version=draft,
            archived_versions=archived,
            audit=audit,
        )

    async def list_publish_audits(self, owner_user_id: str, definition_id: str,
                                  page: int = 1, page_size: int = 20) -> Page[WorkflowPublishAudit]:
        """Publish audit rows of a readable definition, newest first"""
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive", field="page")
        document = await self._load_readable(owner_user_id, definition_id)
        audits = list(reversed(document.audits))
        start = (page - 1) * page_size
        return Page[WorkflowPublishAudit](
            items=audits[start:start + page_size],
            total=len(audits),
            page=page,
            page_size=page_size,
        )


def create_workflow_definition_service(config: Optional[Config] = None) -> WorkflowDefinitionService:
    """Wire a service to the JSON store and the configured registry catalog"""
    config = config or get_config()
    store = JsonWorkflowStore(base_dir=config.data_path)
    governance = GovernanceValidator(
        load_registry_catalog(config.registry_catalog_path),
        definitions=store,
        versions=store,
        min_published_version=config.min_published_version,
    )
    return WorkflowDefinitionService(store, governance, config=config)
