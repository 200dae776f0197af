# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Reference Extraction

Collects every identifier a DSL binds to outside itself: rule packs, agent
profiles, parameter codes, data connectors and subflow targets. Pure and
side-effect free; the governance validator resolves what this finds.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .expressions import parameter_codes, refs_in
from .models import WorkflowDsl
from .node_types import AgentNode, RuleNode, SubflowCallNode, classify_nodes
from .validation import normalize_codes


@dataclass(frozen=True)
class SubflowTarget:
    """A subflow-call node and the workflow it invokes"""
    node_id: str
    node_name: str
    definition_id: Optional[str] = None
    version_id: Optional[str] = None


@dataclass(frozen=True)
class MissingRulePack:
    """A pack-backed rule node that names no rule pack"""
    node_id: str
    node_name: str


@dataclass(frozen=True)
class DslReferences:
    rule_pack_codes: Tuple[str, ...] = ()
    agent_codes: Tuple[str, ...] = ()
    parameter_refs: Tuple[str, ...] = ()
    data_connector_codes: Tuple[str, ...] = ()
    agent_bindings: Tuple[str, ...] = ()
    param_set_bindings: Tuple[str, ...] = ()
    data_connector_bindings: Tuple[str, ...] = ()
    subflow_targets: Tuple[SubflowTarget, ...] = ()
    missing_rule_pack_nodes: Tuple[MissingRulePack, ...] = ()


def extract_references(dsl: WorkflowDsl) -> DslReferences:
    """Walk a DSL and collect its external references (codes sorted and de-duplicated)"""
    kinds = classify_nodes(dsl.nodes)

    rule_pack_codes = set()
    missing_packs: List[MissingRulePack] = []
    agent_profile_codes = set()
    subflows: List[SubflowTarget] = []

    for kind in kinds:
        if isinstance(kind, RuleNode) and kind.pack_backed:
            if kind.rule_pack_codes:
                rule_pack_codes.update(kind.rule_pack_codes)
            else:
                missing_packs.append(MissingRulePack(node_id=kind.id, node_name=kind.node.name))
        elif isinstance(kind, AgentNode) and kind.agent_profile_code:
            agent_profile_codes.add(kind.agent_profile_code)
        elif isinstance(kind, SubflowCallNode):
            subflows.append(SubflowTarget(
                node_id=kind.id,
                node_name=kind.node.name,
                definition_id=kind.workflow_definition_id,
                version_id=kind.workflow_version_id,
            ))

    agent_bindings = normalize_codes(dsl.agent_bindings)
    param_set_bindings = normalize_codes(dsl.param_set_bindings)
    data_connector_bindings = normalize_codes(dsl.data_connector_bindings)

    scanned: List[Any] = []
    for node in dsl.nodes:
        scanned.extend([node.config, node.input_bindings])
    scanned.extend(edge.condition for edge in dsl.edges)

    return DslReferences(
        rule_pack_codes=tuple(sorted(rule_pack_codes)),
        agent_codes=tuple(sorted(agent_profile_codes.union(agent_bindings))),
        parameter_refs=tuple(sorted(parameter_codes(refs_in(scanned)))),
        data_connector_codes=tuple(sorted(set(data_connector_bindings))),
        agent_bindings=tuple(agent_bindings),
        param_set_bindings=tuple(param_set_bindings),
        data_connector_bindings=tuple(data_connector_bindings),
        subflow_targets=tuple(subflows),
        missing_rule_pack_nodes=tuple(missing_packs),
    )
