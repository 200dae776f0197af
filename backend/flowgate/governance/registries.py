# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Governance Registries

Read-only lookup interfaces the governance validator resolves references
against, plus in-memory implementations backed by plain records.

Interface contract (shared by every registry):

    async def find_...(codes, ...) -> list

Lookups take a whole batch of codes and return only the matches; callers
compute what is missing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from flowgate.workflow_dsl.models import TemplateSource


@dataclass(frozen=True)
class ArtifactRef:
    """A resolved governed artifact and its version number"""
    code: str
    version: int


@dataclass(frozen=True)
class ArtifactRecord:
    """A rule pack, agent profile or parameter set as stored by its owner service"""
    code: str
    version: int = 1
    owner_user_id: Optional[str] = None
    template_source: TemplateSource = TemplateSource.PRIVATE
    is_active: bool = True

    def visible_to(self, owner_user_id: str) -> bool:
        return self.owner_user_id == owner_user_id or self.template_source == TemplateSource.PUBLIC


@dataclass(frozen=True)
class ParameterItemRecord:
    """One parameter inside a parameter set"""
    param_code: str
    set_code: str
    is_active: bool = True


@dataclass(frozen=True)
class DataConnectorRecord:
    code: str
    is_active: bool = True


# =============================================================================
# INTERFACES
# =============================================================================

class ArtifactRegistry(ABC):
    """Rule packs, agent profiles and parameter sets share this lookup"""

    @abstractmethod
    async def find_active_visible(self, codes: Sequence[str], owner_user_id: str) -> List[ArtifactRef]:
        """Active artifacts among `codes` owned by the caller or marked PUBLIC."""
        ...


class ParameterItemRegistry(ABC):

    @abstractmethod
    async def find_active(self, param_codes: Sequence[str], bound_set_codes: Sequence[str],
                          owner_user_id: str) -> List[str]:
        """Parameter codes among `param_codes` that exist in one of the bound sets."""
        ...


class DataConnectorRegistry(ABC):

    @abstractmethod
    async def find_active(self, codes: Sequence[str]) -> List[str]:
        """Active connector codes among `codes`. Connectors are not tenant scoped."""
        ...


class WorkflowDefinitionRegistry(ABC):

    @abstractmethod
    async def find_visible(self, definition_id: str, owner_user_id: str) -> Optional[str]:
        """Definition id if it exists and the caller may read it."""
        ...


class WorkflowVersionRegistry(ABC):

    @abstractmethod
    async def find_published(self, definition_id: str,
                             version_id: Optional[str] = None) -> Optional[str]:
        """Id of a published version (the given one, or any when omitted)."""
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================

class InMemoryArtifactRegistry(ArtifactRegistry):

    def __init__(self, records: Iterable[ArtifactRecord] = ()):
        self._records = {record.code: record for record in records}

    def add(self, record: ArtifactRecord) -> None:
        self._records[record.code] = record

    async def find_active_visible(self, codes: Sequence[str], owner_user_id: str) -> List[ArtifactRef]:
        refs = []
        for code in dict.fromkeys(codes):
            record = self._records.get(code)
            if record and record.is_active and record.visible_to(owner_user_id):
                refs.append(ArtifactRef(code=record.code, version=record.version))
        return refs


class InMemoryParameterItemRegistry(ParameterItemRegistry):
    """
    Parameter items keyed by (set code, param code).

    Set visibility is enforced by the parameter-set registry; this lookup only
    checks that an item lives in one of the bound sets.
    """

    def __init__(self, items: Iterable[ParameterItemRecord] = ()):
        self._items = list(items)

    def add(self, item: ParameterItemRecord) -> None:
        self._items.append(item)

    async def find_active(self, param_codes: Sequence[str], bound_set_codes: Sequence[str],
                          owner_user_id: str) -> List[str]:
        wanted = set(param_codes)
        bound = set(bound_set_codes)
        found = {
            item.param_code for item in self._items
            if item.is_active and item.param_code in wanted and item.set_code in bound
        }
        return sorted(found)


class InMemoryDataConnectorRegistry(DataConnectorRegistry):

    def __init__(self, records: Iterable[DataConnectorRecord] = ()):
        self._records = {record.code: record for record in records}

    def add(self, record: DataConnectorRecord) -> None:
        self._records[record.code] = record

    async def find_active(self, codes: Sequence[str]) -> List[str]:
        return [
            code for code in dict.fromkeys(codes)
            if code in self._records and self._records[code].is_active
        ]
