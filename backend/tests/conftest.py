# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures: seeded registries and a service wired to a temporary store.
"""

import os
import sys
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from flowgate.core.config import Config
from flowgate.governance.catalog import RegistryCatalog
from flowgate.governance.registries import (
    ArtifactRecord,
    DataConnectorRecord,
    InMemoryArtifactRegistry,
    InMemoryDataConnectorRegistry,
    InMemoryParameterItemRegistry,
    ParameterItemRecord,
)
from flowgate.governance.validator import GovernanceValidator
from flowgate.lifecycle.service import WorkflowDefinitionService
from flowgate.lifecycle.store import JsonWorkflowStore
from flowgate.workflow_dsl.models import TemplateSource

from tests.dsl_factory import OTHER_USER, OWNER


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for workflow documents"""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_data_dir):
    return Config(data_dir=str(temp_data_dir), log_format="text")


@pytest.fixture
def catalog():
    """Registries seeded with published, draft and foreign artifacts"""
    return RegistryCatalog(
        rule_packs=InMemoryArtifactRegistry([
            ArtifactRecord(code="RP_CREDIT", version=3, owner_user_id=OWNER),
            ArtifactRecord(code="RP_DRAFT", version=1, owner_user_id=OWNER),
            ArtifactRecord(code="RP_FOREIGN", version=4, owner_user_id=OTHER_USER),
            ArtifactRecord(code="RP_SHARED", version=2, owner_user_id=OTHER_USER,
                           template_source=TemplateSource.PUBLIC),
            ArtifactRecord(code="RP_RETIRED", version=5, owner_user_id=OWNER, is_active=False),
        ]),
        agent_profiles=InMemoryArtifactRegistry([
            ArtifactRecord(code="AG_ANALYST", version=2, owner_user_id=OTHER_USER,
                           template_source=TemplateSource.PUBLIC),
            ArtifactRecord(code="AG_DRAFT", version=1, owner_user_id=OWNER),
        ]),
        parameter_sets=InMemoryArtifactRegistry([
            ArtifactRecord(code="PS_LIMITS", version=2, owner_user_id=OWNER),
            ArtifactRecord(code="PS_DRAFT", version=1, owner_user_id=OWNER),
        ]),
        parameter_items=InMemoryParameterItemRegistry([
            ParameterItemRecord(param_code="maxExposure", set_code="PS_LIMITS"),
            ParameterItemRecord(param_code="minScore", set_code="PS_LIMITS"),
            ParameterItemRecord(param_code="draftOnly", set_code="PS_DRAFT"),
        ]),
        data_connectors=InMemoryDataConnectorRegistry([
            DataConnectorRecord(code="DC_MARKET"),
            DataConnectorRecord(code="DC_LEGACY", is_active=False),
        ]),
    )


@pytest.fixture
def store(temp_data_dir):
    return JsonWorkflowStore(base_dir=temp_data_dir)


@pytest.fixture
def governance(catalog, store):
    return GovernanceValidator(catalog, definitions=store, versions=store)


@pytest.fixture
def service(store, governance, config):
    return WorkflowDefinitionService(store, governance, config=config)
