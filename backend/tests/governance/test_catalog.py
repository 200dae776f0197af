# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for registry lookups and YAML catalog loading
"""

import pytest

from flowgate.core.errors import ValidationError
from flowgate.governance.catalog import load_registry_catalog
from flowgate.governance.registries import ArtifactRef

from tests.dsl_factory import OTHER_USER, OWNER


CATALOG_YAML = """
rule_packs:
  - {code: RP_CREDIT, version: 3, owner_user_id: user-1}
  - {code: RP_OLD, version: 2, owner_user_id: user-1, is_active: false}
agent_profiles:
  - {code: AG_ANALYST, version: 2, template_source: PUBLIC}
parameter_sets:
  - code: PS_LIMITS
    version: 2
    owner_user_id: user-1
    items: [maxExposure, minScore]
data_connectors:
  - {code: DC_MARKET}
  - {code: DC_LEGACY, is_active: false}
"""


class TestInMemoryRegistries:

    @pytest.mark.asyncio
    async def test_find_active_visible(self, catalog):
        refs = await catalog.rule_packs.find_active_visible(
            ["RP_CREDIT", "RP_FOREIGN", "RP_SHARED", "RP_RETIRED", "RP_CREDIT", "RP_NONE"], OWNER,
        )
        assert refs == [ArtifactRef("RP_CREDIT", 3), ArtifactRef("RP_SHARED", 2)]

        foreign = await catalog.rule_packs.find_active_visible(["RP_CREDIT", "RP_FOREIGN"], OTHER_USER)
        assert foreign == [ArtifactRef("RP_FOREIGN", 4)]

    @pytest.mark.asyncio
    async def test_parameter_items_limited_to_bound_sets(self, catalog):
        found = await catalog.parameter_items.find_active(
            ["maxExposure", "draftOnly", "unknown"], ["PS_LIMITS"], OWNER,
        )
        assert found == ["maxExposure"]

    @pytest.mark.asyncio
    async def test_data_connectors_ignore_ownership(self, catalog):
        assert await catalog.data_connectors.find_active(["DC_LEGACY", "DC_MARKET"]) == ["DC_MARKET"]


class TestLoadCatalog:

    @pytest.mark.asyncio
    async def test_load_from_yaml(self, temp_data_dir):
        path = temp_data_dir / "registries.yaml"
        path.write_text(CATALOG_YAML)
        catalog = load_registry_catalog(path)

        assert await catalog.rule_packs.find_active_visible(["RP_CREDIT", "RP_OLD"], OWNER) == [
            ArtifactRef("RP_CREDIT", 3),
        ]
        assert await catalog.agent_profiles.find_active_visible(["AG_ANALYST"], OTHER_USER) == [
            ArtifactRef("AG_ANALYST", 2),
        ]
        assert await catalog.parameter_items.find_active(
            ["minScore", "other"], ["PS_LIMITS"], OWNER,
        ) == ["minScore"]
        assert await catalog.data_connectors.find_active(["DC_MARKET", "DC_LEGACY"]) == ["DC_MARKET"]

    @pytest.mark.asyncio
    async def test_missing_file_gives_empty_catalog(self, temp_data_dir):
        catalog = load_registry_catalog(temp_data_dir / "absent.yaml")
        assert await catalog.rule_packs.find_active_visible(["RP_CREDIT"], OWNER) == []

    def test_invalid_file(self, temp_data_dir):
        path = temp_data_dir / "broken.yaml"
        path.write_text("rule_packs:\n  - {version: 0}\n")

        with pytest.raises(ValidationError) as exc_info:
            load_registry_catalog(path)
        assert exc_info.value.field == "catalog"
        assert exc_info.value.status_code == 400
