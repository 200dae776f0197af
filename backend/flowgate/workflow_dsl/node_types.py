# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Node Kinds

Classifies the open-ended node `type` tag into a closed set of typed variants,
each carrying the config fields the validators care about. Unrecognized types
become `GenericNode`, which only takes part in generic graph checks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import WorkflowNode


OUTPUT_NODE_TYPES = ("notify", "report-generate", "dashboard-publish")
RULE_NODE_TYPES = ("rule-pack-eval", "rule-eval", "alert-check")
AGENT_NODE_TYPES = ("single-agent", "agent-call", "agent-group", "judge-agent")

# Config keys that make an alert-check evaluate its own rules instead of a pack
ALERT_INLINE_FIELDS = ("alertRules", "alertType", "threshold", "conditions")


class RuleSource(str, Enum):
    DECISION_RULE_PACK = "DECISION_RULE_PACK"
    INLINE = "INLINE"


@dataclass(frozen=True)
class NodeKind:
    """Base variant; `node` is the raw DSL node"""
    node: WorkflowNode

    @property
    def id(self) -> str:
        return self.node.id


@dataclass(frozen=True)
class TriggerNode(NodeKind):
    pass


@dataclass(frozen=True)
class OutputNode(NodeKind):
    pass


@dataclass(frozen=True)
class ApprovalNode(NodeKind):
    pass


@dataclass(frozen=True)
class RiskGateNode(NodeKind):
    risk_profile_code: Optional[str] = None


@dataclass(frozen=True)
class JoinNode(NodeKind):
    join_policy: Optional[str] = None
    quorum_branches: Any = None


@dataclass(frozen=True)
class DecisionMergeNode(NodeKind):
    pass


@dataclass(frozen=True)
class RuleNode(NodeKind):
    rule_source: RuleSource = RuleSource.INLINE
    rule_pack_codes: Tuple[str, ...] = ()

    @property
    def pack_backed(self) -> bool:
        return self.rule_source == RuleSource.DECISION_RULE_PACK


@dataclass(frozen=True)
class AgentNode(NodeKind):
    agent_profile_code: Optional[str] = None

    @property
    def is_judge(self) -> bool:
        return self.node.type == "judge-agent"


@dataclass(frozen=True)
class DebateRoundNode(NodeKind):
    pass


@dataclass(frozen=True)
class ContextBuilderNode(NodeKind):
    pass


@dataclass(frozen=True)
class SubflowCallNode(NodeKind):
    workflow_definition_id: Optional[str] = None
    workflow_version_id: Optional[str] = None


@dataclass(frozen=True)
class DataFetchNode(NodeKind):
    pass


@dataclass(frozen=True)
class GenericNode(NodeKind):
    pass


def is_trigger_type(node_type: str) -> bool:
    return node_type == "trigger" or node_type.endswith("-trigger")


def is_data_fetch_type(node_type: str) -> bool:
    return node_type == "data-fetch" or node_type.endswith("-fetch")


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _rule_pack_codes(config: Dict[str, Any]) -> Tuple[str, ...]:
    codes: List[str] = []
    single = _text(config.get("rulePackCode"))
    if single:
        codes.append(single)
    many = config.get("rulePackCodes")
    if isinstance(many, (list, tuple)):
        for item in many:
            code = _text(item)
            if code and code not in codes:
                codes.append(code)
    return tuple(codes)


def resolve_rule_source(node: WorkflowNode) -> RuleSource:
    """
    Decide whether a rule node evaluates a decision rule pack.

    rule-pack-eval is always pack-backed and rule-eval always inline.
    alert-check honours an explicit `ruleSource`, otherwise it is pack-backed
    unless it declares inline alert fields.
    """
    if node.type == "rule-pack-eval":
        return RuleSource.DECISION_RULE_PACK
    if node.type == "rule-eval":
        return RuleSource.INLINE

    explicit = _text(node.config.get("ruleSource"))
    if explicit in (RuleSource.DECISION_RULE_PACK.value, RuleSource.INLINE.value):
        return RuleSource(explicit)
    if any(node.config.get(key) not in (None, "", [], {}) for key in ALERT_INLINE_FIELDS):
        return RuleSource.INLINE
    return RuleSource.DECISION_RULE_PACK


def _rule(node: WorkflowNode) -> RuleNode:
    return RuleNode(
        node=node,
        rule_source=resolve_rule_source(node),
        rule_pack_codes=_rule_pack_codes(node.config),
    )


def _agent(node: WorkflowNode) -> AgentNode:
    return AgentNode(node=node, agent_profile_code=_text(node.config.get("agentProfileCode")))


def _join(node: WorkflowNode) -> JoinNode:
    return JoinNode(
        node=node,
        join_policy=_text(node.config.get("joinPolicy")),
        quorum_branches=node.config.get("quorumBranches"),
    )


def _subflow(node: WorkflowNode) -> SubflowCallNode:
    return SubflowCallNode(
        node=node,
        workflow_definition_id=_text(node.config.get("workflowDefinitionId")),
        workflow_version_id=_text(node.config.get("workflowVersionId")),
    )


def _risk_gate(node: WorkflowNode) -> RiskGateNode:
    return RiskGateNode(node=node, risk_profile_code=_text(node.config.get("riskProfileCode")))


_BUILDERS: Dict[str, Callable[[WorkflowNode], NodeKind]] = {
    "approval": ApprovalNode,
    "risk-gate": _risk_gate,
    "join": _join,
    "decision-merge": DecisionMergeNode,
    "debate-round": DebateRoundNode,
    "context-builder": ContextBuilderNode,
    "subflow-call": _subflow,
}
_BUILDERS.update({node_type: OutputNode for node_type in OUTPUT_NODE_TYPES})
_BUILDERS.update({node_type: _rule for node_type in RULE_NODE_TYPES})
_BUILDERS.update({node_type: _agent for node_type in AGENT_NODE_TYPES})


def classify_node(node: WorkflowNode) -> NodeKind:
    """Map a DSL node to its typed variant"""
    builder = _BUILDERS.get(node.type)
    if builder is not None:
        return builder(node)
    if is_trigger_type(node.type):
        return TriggerNode(node=node)
    if is_data_fetch_type(node.type):
        return DataFetchNode(node=node)
    return GenericNode(node=node)


def classify_nodes(nodes: List[WorkflowNode]) -> List[NodeKind]:
    return [classify_node(node) for node in nodes]
