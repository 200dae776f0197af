# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Governance: registry lookups and publish-time reference validation.
"""

from flowgate.governance.registries import (
    ArtifactRecord,
    ArtifactRef,
    ArtifactRegistry,
    DataConnectorRecord,
    DataConnectorRegistry,
    InMemoryArtifactRegistry,
    InMemoryDataConnectorRegistry,
    InMemoryParameterItemRegistry,
    ParameterItemRecord,
    ParameterItemRegistry,
    WorkflowDefinitionRegistry,
    WorkflowVersionRegistry,
)
from flowgate.governance.catalog import RegistryCatalog, load_registry_catalog
from flowgate.governance.validator import GovernanceValidator

__all__ = [
    "ArtifactRecord",
    "ArtifactRef",
    "ArtifactRegistry",
    "DataConnectorRecord",
    "DataConnectorRegistry",
    "InMemoryArtifactRegistry",
    "InMemoryDataConnectorRegistry",
    "InMemoryParameterItemRegistry",
    "ParameterItemRecord",
    "ParameterItemRegistry",
    "WorkflowDefinitionRegistry",
    "WorkflowVersionRegistry",
    "RegistryCatalog",
    "load_registry_catalog",
    "GovernanceValidator",
]
