# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Store - Persistent storage for definitions, versions and audits.
All state lives in plain JSON files, inspectable with `cat`.

Storage structure:
    data/workflows/
    ├── wfd_3f2a....json
    └── wfd_9b1c....json

Each file holds one definition document:
    - definition
    - versions (oldest first)
    - audits (oldest first)

Writes go to a temp file that replaces the document, so readers never see a
partial write. Mutations happen inside `unit_of_work()`, which holds the
definition's lock and commits all staged changes at once or none of them.
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Union

import aiofiles
import aiofiles.os
from pydantic import BaseModel, Field

from flowgate.core.config import get_config
from flowgate.core.errors import NotFoundError, ValidationError
from flowgate.core.logging import get_service_logger
from flowgate.governance.registries import WorkflowDefinitionRegistry, WorkflowVersionRegistry

from .models import (
    VersionStatus,
    WorkflowDefinition,
    WorkflowPublishAudit,
    WorkflowVersion,
)

logger = get_service_logger("workflow_store")


class DefinitionDocument(BaseModel):
    """Everything stored for one definition"""
    definition: WorkflowDefinition
    versions: List[WorkflowVersion] = Field(default_factory=list)
    audits: List[WorkflowPublishAudit] = Field(default_factory=list)

    def find_version(self, version_id: Optional[str] = None,
                     version_code: Optional[str] = None) -> Optional[WorkflowVersion]:
        for version in self.versions:
            if version_id and version.id != version_id:
                continue
            if version_code and version.version_code != version_code:
                continue
            return version
        return None

    def versions_with_status(self, status: VersionStatus) -> List[WorkflowVersion]:
        return [version for version in self.versions if version.status == status]


class JsonWorkflowStore(WorkflowDefinitionRegistry, WorkflowVersionRegistry):
    """
    File-backed store. Also serves as the definition and version registries
    used to resolve subflow targets.
    """

    def __init__(self, base_dir: Union[str, Path, None] = None):
        if base_dir is None:
            base_dir = get_config().data_path

        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        # One lock per definition document, plus one guarding workflowId uniqueness
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

    def _get_lock(self, definition_id: str) -> asyncio.Lock:
        """Get or create lock for a specific definition"""
        if definition_id not in self._locks:
            self._locks[definition_id] = asyncio.Lock()
        return self._locks[definition_id]

    def _path(self, definition_id: str) -> Path:
        return self.base_dir / f"{definition_id}.json"

    async def _read(self, path: Path) -> Optional[DefinitionDocument]:
        if not path.exists():
            return None
        async with aiofiles.open(path, "r") as f:
            content = await f.read()
        return DefinitionDocument.model_validate_json(content)

    async def _write(self, document: DefinitionDocument) -> None:
        path = self._path(document.definition.id)
        tmp_path = path.with_name(f".{path.name}.tmp")
        async with aiofiles.open(tmp_path, "w") as f:
            await f.write(document.model_dump_json(indent=2))
        await aiofiles.os.replace(tmp_path, path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self, definition_id: str) -> Optional[DefinitionDocument]:
        return await self._read(self._path(definition_id))

    async def list_documents(self) -> List[DefinitionDocument]:
        documents = []
        for path in sorted(self.base_dir.glob("*.json")):
            try:
                document = await self._read(path)
            except ValueError as e:
                logger.warning(f"Skipping unreadable workflow document {path.name}: {e}")
                continue
            if document is not None:
                documents.append(document)
        return documents

    async def find_by_workflow_id(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        for document in await self.list_documents():
            if document.definition.workflow_id == workflow_id:
                return document.definition
        return None

    async def find_visible(self, definition_id: str, owner_user_id: str) -> Optional[str]:
        document = await self.load(definition_id)
        if document is None or not document.definition.readable_by(owner_user_id):
            return None
        return document.definition.id

    async def find_published(self, definition_id: str,
                             version_id: Optional[str] = None) -> Optional[str]:
        document = await self.load(definition_id)
        if document is None:
            return None
        for version in document.versions_with_status(VersionStatus.PUBLISHED):
            if version_id is None or version.id == version_id:
                return version.id
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, document: DefinitionDocument) -> DefinitionDocument:
        """Persist a new definition document; workflowId must be unused"""
        async with self._global_lock:
            workflow_id = document.definition.workflow_id
            if await self.find_by_workflow_id(workflow_id) is not None:
                raise ValidationError(f"Workflow '{workflow_id}' already exists", field="workflow_id")
            async with self._get_lock(document.definition.id):
                await self._write(document)

        logger.info(f"Stored workflow definition {document.definition.id} ({workflow_id})")
        return document

    @asynccontextmanager
    async def unit_of_work(self, definition_id: str) -> AsyncIterator[DefinitionDocument]:
        """
        Stage changes on a copy of the definition document.

        The copy is written back when the block exits cleanly and discarded
        when it raises.
        """
        async with self._get_lock(definition_id):
            document = await self.load(definition_id)
            if document is None:
                raise NotFoundError("WorkflowDefinition", definition_id)

            staged = document.model_copy(deep=True)
            yield staged
            await self._write(staged)
