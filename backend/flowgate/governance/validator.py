# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Governance Validator

Resolves a DSL's external references against the registries, enforcing
visibility, active status and "published at least once" version gating.

SAVE stage only checks that declared bindings exist. PUBLISH runs every
category. Categories are independent reads and run concurrently; every
unsatisfied category is reported, nothing fails fast.
"""

import asyncio
from typing import List, Optional, Sequence, Union

from flowgate.core.logging import get_service_logger
from flowgate.workflow_dsl.models import (
    IssueSeverity,
    ValidationIssue,
    ValidationResult,
    ValidationStage,
    WorkflowDsl,
)
from flowgate.workflow_dsl.references import DslReferences, SubflowTarget, extract_references

from .catalog import RegistryCatalog
from .registries import ArtifactRef, ArtifactRegistry, WorkflowDefinitionRegistry, WorkflowVersionRegistry

logger = get_service_logger("governance")


def _issue(code: str, message: str, node_id: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(code=code, severity=IssueSeverity.ERROR, message=message, node_id=node_id)


class GovernanceValidator:
    """
    Governance checks over one DSL.

    Issue codes:
        WF301  rule packs          WF302  parameter sets
        WF303  agent profiles      WF203  parameter references
        WF304  owner isolation     WF107  subflow targets
        WF307  data connectors
    """

    def __init__(
        self,
        catalog: RegistryCatalog,
        definitions: WorkflowDefinitionRegistry,
        versions: WorkflowVersionRegistry,
        min_published_version: int = 2,
    ):
        self.catalog = catalog
        self.definitions = definitions
        self.versions = versions
        self.min_published_version = min_published_version

    async def validate(
        self,
        dsl: WorkflowDsl,
        owner_user_id: str,
        stage: Union[ValidationStage, str] = ValidationStage.PUBLISH,
        current_definition_id: Optional[str] = None,
    ) -> ValidationResult:
        stage = ValidationStage(stage)
        refs = extract_references(dsl)

        if stage == ValidationStage.SAVE:
            checks = [
                self._check_artifacts(
                    "WF303", "Agent profile", self.catalog.agent_profiles,
                    refs.agent_bindings, owner_user_id, gate_version=False,
                ),
                self._check_artifacts(
                    "WF302", "Parameter set", self.catalog.parameter_sets,
                    refs.param_set_bindings, owner_user_id, gate_version=False,
                ),
                self._check_data_connectors(refs),
            ]
        else:
            checks = [
                self._check_rule_packs(refs, owner_user_id),
                self._check_artifacts(
                    "WF303", "Agent profile", self.catalog.agent_profiles,
                    refs.agent_codes, owner_user_id,
                ),
                self._check_parameters(refs, owner_user_id),
                self._check_data_connectors(refs),
                self._check_subflows(refs, owner_user_id, current_definition_id),
            ]

        results = await asyncio.gather(*checks)
        issues: List[ValidationIssue] = []
        if stage == ValidationStage.PUBLISH:
            issues.extend(self._check_owner(dsl, owner_user_id))
        for category_issues in results:
            issues.extend(category_issues)

        result = ValidationResult.from_issues(issues)
        if not result.valid:
            logger.info(
                f"Governance {stage.value} validation failed for workflow "
                f"'{dsl.workflow_id}': {', '.join(sorted(set(result.codes())))}"
            )
        return result

    # ------------------------------------------------------------------
    # Artifact categories
    # ------------------------------------------------------------------

    async def _resolve(self, registry: ArtifactRegistry, codes: Sequence[str], owner_user_id: str,
                       gate_version: bool = True) -> List[str]:
        """Human-readable problems for codes that are missing or unpublished"""
        if not codes:
            return []
        found = {ref.code: ref for ref in await registry.find_active_visible(list(codes), owner_user_id)}
        problems = []
        for code in codes:
            ref: Optional[ArtifactRef] = found.get(code)
            if ref is None:
                problems.append(f"{code} (not found, inactive or not visible)")
            elif gate_version and ref.version < self.min_published_version:
                problems.append(f"{code} (version {ref.version} has never been published)")
        return problems

    async def _check_artifacts(self, code: str, label: str, registry: ArtifactRegistry,
                               codes: Sequence[str], owner_user_id: str,
                               gate_version: bool = True) -> List[ValidationIssue]:
        problems = await self._resolve(registry, codes, owner_user_id, gate_version)
        if not problems:
            return []
        return [_issue(code, f"{label} references are not usable: {'; '.join(problems)}")]

    async def _check_rule_packs(self, refs: DslReferences, owner_user_id: str) -> List[ValidationIssue]:
        issues = [
            _issue(
                "WF301",
                f"Rule node {missing.node_name} evaluates a decision rule pack "
                f"but configures no rulePackCode",
                node_id=missing.node_id,
            )
            for missing in refs.missing_rule_pack_nodes
        ]
        issues.extend(await self._check_artifacts(
            "WF301", "Rule pack", self.catalog.rule_packs, refs.rule_pack_codes, owner_user_id,
        ))
        return issues

    async def _check_parameters(self, refs: DslReferences, owner_user_id: str) -> List[ValidationIssue]:
        issues = await self._check_artifacts(
            "WF302", "Parameter set", self.catalog.parameter_sets,
            refs.param_set_bindings, owner_user_id,
        )
        # References with no paramSetBindings at all are structural WF203
        if not refs.parameter_refs or not refs.param_set_bindings:
            return issues

        bound_sets = [
            ref.code for ref in await self.catalog.parameter_sets.find_active_visible(
                list(refs.param_set_bindings), owner_user_id,
            )
        ]
        resolved = set()
        if bound_sets:
            resolved = set(await self.catalog.parameter_items.find_active(
                list(refs.parameter_refs), bound_sets, owner_user_id,
            ))
        unresolved = [code for code in refs.parameter_refs if code not in resolved]
        if unresolved:
            issues.append(_issue(
                "WF203",
                f"Parameter references do not resolve in the bound parameter sets: "
                f"{', '.join(unresolved)}",
            ))
        return issues

    async def _check_data_connectors(self, refs: DslReferences) -> List[ValidationIssue]:
        codes = refs.data_connector_codes
        if not codes:
            return []
        active = set(await self.catalog.data_connectors.find_active(list(codes)))
        missing = [code for code in codes if code not in active]
        if not missing:
            return []
        return [_issue("WF307", f"Data connectors not found or inactive: {', '.join(missing)}")]

    # ------------------------------------------------------------------
    # Ownership and subflows
    # ------------------------------------------------------------------

    def _check_owner(self, dsl: WorkflowDsl, owner_user_id: str) -> List[ValidationIssue]:
        dsl_owner = (dsl.owner_user_id or "").strip()
        if not dsl_owner:
            return [_issue("WF304", "DSL ownerUserId is required before publishing")]
        if dsl_owner != owner_user_id:
            return [_issue("WF304", "DSL ownerUserId does not match the publishing user")]
        return []

    async def _check_subflows(self, refs: DslReferences, owner_user_id: str,
                              current_definition_id: Optional[str]) -> List[ValidationIssue]:
        results = await asyncio.gather(*[
            self._check_subflow(target, owner_user_id, current_definition_id)
            for target in refs.subflow_targets
        ])
        return [issue for issue in results if issue is not None]

    async def _check_subflow(self, target: SubflowTarget, owner_user_id: str,
                             current_definition_id: Optional[str]) -> Optional[ValidationIssue]:
        if not target.definition_id:
            return _issue(
                "WF107",
                f"Subflow node {target.node_name} must configure workflowDefinitionId",
                node_id=target.node_id,
            )
        if current_definition_id and target.definition_id == current_definition_id:
            return _issue(
                "WF107",
                f"Subflow node {target.node_name} cannot call its own workflow",
                node_id=target.node_id,
            )
        if await self.definitions.find_visible(target.definition_id, owner_user_id) is None:
            return _issue(
                "WF107",
                f"Subflow node {target.node_name} references a workflow that does not exist "
                f"or is not accessible: {target.definition_id}",
                node_id=target.node_id,
            )
        if await self.versions.find_published(target.definition_id, target.version_id) is None:
            wanted = f"version {target.version_id}" if target.version_id else "any version"
            return _issue(
                "WF107",
                f"Subflow node {target.node_name} needs a published {wanted} "
                f"of workflow {target.definition_id}",
                node_id=target.node_id,
            )
        return None
