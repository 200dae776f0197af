# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry catalog - the artifact registries governance resolves against.

A catalog can be built in code or seeded from a YAML file:

    rule_packs:
      - {code: RP_CREDIT, version: 3, owner_user_id: u1}
    agent_profiles:
      - {code: AG_ANALYST, version: 2, template_source: PUBLIC}
    parameter_sets:
      - code: PS_LIMITS
        version: 2
        owner_user_id: u1
        items: [maxExposure, minScore]
    data_connectors:
      - {code: DC_MARKET}
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from flowgate.core.errors import ValidationError
from flowgate.core.logging import get_service_logger
from flowgate.workflow_dsl.models import TemplateSource

from .registries import (
    ArtifactRecord,
    ArtifactRegistry,
    DataConnectorRecord,
    DataConnectorRegistry,
    InMemoryArtifactRegistry,
    InMemoryDataConnectorRegistry,
    InMemoryParameterItemRegistry,
    ParameterItemRecord,
    ParameterItemRegistry,
)

logger = get_service_logger("registry_catalog")


@dataclass
class RegistryCatalog:
    """One registry per governed artifact category"""
    rule_packs: ArtifactRegistry = field(default_factory=InMemoryArtifactRegistry)
    agent_profiles: ArtifactRegistry = field(default_factory=InMemoryArtifactRegistry)
    parameter_sets: ArtifactRegistry = field(default_factory=InMemoryArtifactRegistry)
    parameter_items: ParameterItemRegistry = field(default_factory=InMemoryParameterItemRegistry)
    data_connectors: DataConnectorRegistry = field(default_factory=InMemoryDataConnectorRegistry)


# =============================================================================
# YAML SCHEMA
# =============================================================================

class ArtifactEntry(BaseModel):
    code: str = Field(min_length=1)
    version: int = Field(default=1, ge=1)
    owner_user_id: Optional[str] = None
    template_source: TemplateSource = TemplateSource.PRIVATE
    is_active: bool = True

    def to_record(self) -> ArtifactRecord:
        return ArtifactRecord(
            code=self.code,
            version=self.version,
            owner_user_id=self.owner_user_id,
            template_source=self.template_source,
            is_active=self.is_active,
        )


class ParameterSetEntry(ArtifactEntry):
    items: List[str] = Field(default_factory=list)


class ConnectorEntry(BaseModel):
    code: str = Field(min_length=1)
    is_active: bool = True


class CatalogFile(BaseModel):
    rule_packs: List[ArtifactEntry] = Field(default_factory=list)
    agent_profiles: List[ArtifactEntry] = Field(default_factory=list)
    parameter_sets: List[ParameterSetEntry] = Field(default_factory=list)
    data_connectors: List[ConnectorEntry] = Field(default_factory=list)


def build_catalog(data: CatalogFile) -> RegistryCatalog:
    items = [
        ParameterItemRecord(param_code=item, set_code=entry.code, is_active=entry.is_active)
        for entry in data.parameter_sets
        for item in entry.items
    ]
    return RegistryCatalog(
        rule_packs=InMemoryArtifactRegistry(entry.to_record() for entry in data.rule_packs),
        agent_profiles=InMemoryArtifactRegistry(entry.to_record() for entry in data.agent_profiles),
        parameter_sets=InMemoryArtifactRegistry(entry.to_record() for entry in data.parameter_sets),
        parameter_items=InMemoryParameterItemRegistry(items),
        data_connectors=InMemoryDataConnectorRegistry(
            DataConnectorRecord(code=entry.code, is_active=entry.is_active)
            for entry in data.data_connectors
        ),
    )


def load_registry_catalog(path: Union[str, Path]) -> RegistryCatalog:
    """
    Load a catalog from YAML.
    Returns an empty catalog if the file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Registry catalog not found at {path}, starting empty")
        return RegistryCatalog()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    try:
        data = CatalogFile.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid registry catalog {path}: {e}", field="catalog") from e

    logger.info(
        f"Loaded registry catalog from {path}: "
        f"{len(data.rule_packs)} rule packs, {len(data.agent_profiles)} agent profiles, "
        f"{len(data.parameter_sets)} parameter sets, {len(data.data_connectors)} connectors"
    )
    return build_catalog(data)
