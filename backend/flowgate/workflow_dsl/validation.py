# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow DSL Structural Validation

Graph well-formedness and mode-specific topology checks. A pure function of
the DSL: no I/O, never raises, and every check runs independently so one call
reports every structural defect.

Issue codes:
    WF001-WF006  graph shape
    WF101-WF106  mode and node-type rules
    WF201-WF205  data contracts and expressions
    WF305-WF306  evidence chain and experiment rollout

WF104, WF106, WF305 and WF306 only run at the PUBLISH stage.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from pydantic import ValidationError as PydanticValidationError

from .expressions import (
    META_SCOPE,
    PARAMS_SCOPE,
    extract_expression_refs,
    flatten_leaf_entries,
    parameter_codes,
    refs_in,
)
from .field_types import (
    input_field_types,
    is_type_compatible,
    output_field_types,
    resolve_field_type,
)
from .models import (
    EdgeType,
    IssueSeverity,
    ValidationIssue,
    ValidationResult,
    ValidationStage,
    WorkflowDsl,
    WorkflowMode,
    WorkflowNode,
)
from .node_types import (
    AGENT_NODE_TYPES,
    OUTPUT_NODE_TYPES,
    RULE_NODE_TYPES,
    ApprovalNode,
    DebateRoundNode,
    DecisionMergeNode,
    JoinNode,
    NodeKind,
    RiskGateNode,
    TriggerNode,
    classify_node,
    is_data_fetch_type,
)


DEBATE_REQUIRED_TYPES = ("context-builder", "debate-round", "judge-agent")
CONVERGENCE_NODE_TYPES = ("join", "decision-merge")
RUN_POLICY_FIELDS = ("timeoutMs", "retryCount", "retryBackoffMs", "onError")
MODEL_EVIDENCE_TYPES = AGENT_NODE_TYPES + ("debate-round",)
SPLIT_POLICIES = ("RANDOM", "HASH", "USER_HASH")

DslInput = Union[WorkflowDsl, Mapping[str, Any]]


def _issue(code: str, message: str, node_id: Optional[str] = None,
           edge_id: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        code=code,
        severity=IssueSeverity.ERROR,
        message=message,
        node_id=node_id,
        edge_id=edge_id,
    )


@dataclass
class WorkflowGraph:
    """Adjacency view of a DSL. Duplicate node ids keep their first occurrence."""
    nodes: Dict[str, WorkflowNode] = field(default_factory=dict)
    kinds: Dict[str, NodeKind] = field(default_factory=dict)
    successors: Dict[str, List[str]] = field(default_factory=dict)
    predecessors: Dict[str, List[str]] = field(default_factory=dict)
    in_degree: Dict[str, int] = field(default_factory=dict)
    out_degree: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def build(cls, dsl: WorkflowDsl) -> "WorkflowGraph":
        graph = cls()
        for node in dsl.nodes:
            if node.id in graph.nodes:
                continue
            graph.nodes[node.id] = node
            graph.kinds[node.id] = classify_node(node)
            graph.successors[node.id] = []
            graph.predecessors[node.id] = []
            graph.in_degree[node.id] = 0
            graph.out_degree[node.id] = 0

        for edge in dsl.edges:
            if edge.from_ in graph.nodes:
                graph.out_degree[edge.from_] += 1
            if edge.to in graph.nodes:
                graph.in_degree[edge.to] += 1
            if edge.from_ in graph.nodes and edge.to in graph.nodes:
                graph.successors[edge.from_].append(edge.to)
                graph.predecessors[edge.to].append(edge.from_)
        return graph

    def of_type(self, *node_types: str) -> List[WorkflowNode]:
        return [node for node in self.nodes.values() if node.type in node_types]

    def reachable_from(self, start: str) -> Set[str]:
        """Node ids reachable from `start` (excluding `start` unless on a cycle)"""
        seen: Set[str] = set()
        queue = deque(self.successors.get(start, []))
        while queue:
            node_id = queue.popleft()
            if node_id in seen:
                continue
            seen.add(node_id)
            queue.extend(self.successors.get(node_id, []))
        return seen

    def topological_order(self) -> List[str]:
        """Kahn's algorithm; nodes on a cycle are left out of the result"""
        in_degree = {node_id: len(preds) for node_id, preds in self.predecessors.items()}
        queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
        order: List[str] = []
        while queue:
            node_id = queue.popleft()
            order.append(node_id)
            for neighbor in self.successors[node_id]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)
        return order


Check = Callable[[WorkflowDsl, WorkflowGraph, List[ValidationIssue]], None]


class WorkflowDslValidator:
    """
    Structural validator.

    `validate()` runs every SAVE check, plus the PUBLISH-only checks when the
    stage is PUBLISH. Unknown node types only take part in the generic checks.
    """

    def __init__(self, output_node_types: Iterable[str] = OUTPUT_NODE_TYPES):
        self.output_node_types = frozenset(output_node_types)
        self._save_checks: List[Check] = [
            self._check_top_level_fields,
            self._check_uniqueness,
            self._check_edge_references,
            self._check_dangling_nodes,
            self._check_linear_mode,
            self._check_dag_acyclic,
            self._check_debate_mode,
            self._check_dag_convergence,
            self._check_approval_outputs,
            self._check_join_quorum,
            self._check_data_edge_types,
            self._check_input_binding_refs,
            self._check_parameter_bindings_declared,
            self._check_decision_merge_fan_in,
            self._check_condition_edges,
        ]
        self._publish_checks: List[Check] = [
            self._check_risk_gate_exists,
            self._check_run_policy_coverage,
            self._check_evidence_chain,
            self._check_experiment_config,
        ]

    def validate(self, dsl: DslInput,
                 stage: Union[ValidationStage, str] = ValidationStage.SAVE) -> ValidationResult:
        try:
            stage = ValidationStage(stage)
        except ValueError:
            return ValidationResult.from_issues([
                _issue("WF001", f"Unknown validation stage: {stage!r}"),
            ])
        if not isinstance(dsl, WorkflowDsl):
            try:
                dsl = WorkflowDsl.model_validate(dsl)
            except PydanticValidationError as e:
                return ValidationResult.from_issues(schema_issues(e))

        graph = WorkflowGraph.build(dsl)
        issues: List[ValidationIssue] = []
        checks = list(self._save_checks)
        if stage == ValidationStage.PUBLISH:
            checks.extend(self._publish_checks)
        for check in checks:
            check(dsl, graph, issues)
        return ValidationResult.from_issues(issues)

    # ------------------------------------------------------------------
    # Graph shape
    # ------------------------------------------------------------------

    def _check_top_level_fields(self, dsl, graph, issues):
        missing = [
            name for name, present in (
                ("workflowId", bool(dsl.workflow_id.strip())),
                ("name", bool(dsl.name.strip())),
                ("mode", dsl.mode is not None),
                ("nodes", bool(dsl.nodes)),
                ("edges", bool(dsl.edges)),
            )
            if not present
        ]
        if missing:
            issues.append(_issue(
                "WF001",
                f"Missing required workflow fields: {', '.join(missing)}",
            ))

    def _check_uniqueness(self, dsl, graph, issues):
        seen_nodes: Set[str] = set()
        for node in dsl.nodes:
            if node.id in seen_nodes:
                issues.append(_issue("WF002", f"Duplicate node id: {node.id}", node_id=node.id))
            seen_nodes.add(node.id)

        seen_edges: Set[str] = set()
        for edge in dsl.edges:
            if edge.id in seen_edges:
                issues.append(_issue("WF002", f"Duplicate edge id: {edge.id}", edge_id=edge.id))
            seen_edges.add(edge.id)

    def _check_edge_references(self, dsl, graph, issues):
        for edge in dsl.edges:
            missing = [end for end in (edge.from_, edge.to) if end not in graph.nodes]
            if missing:
                issues.append(_issue(
                    "WF003",
                    f"Edge {edge.id} references non-existent node(s): {', '.join(missing)}",
                    edge_id=edge.id,
                ))

    def _check_dangling_nodes(self, dsl, graph, issues):
        for node_id, kind in graph.kinds.items():
            if isinstance(kind, TriggerNode):
                continue
            if graph.in_degree[node_id] == 0 and graph.out_degree[node_id] == 0:
                issues.append(_issue(
                    "WF004",
                    f"Dangling node with no connecting edge: {kind.node.name}",
                    node_id=node_id,
                ))

    def _check_linear_mode(self, dsl, graph, issues):
        if dsl.mode != WorkflowMode.LINEAR:
            return

        for node_id, kind in graph.kinds.items():
            name = kind.node.name
            incoming = graph.in_degree[node_id]
            outgoing = graph.out_degree[node_id]
            if outgoing > 1:
                issues.append(_issue(
                    "WF005",
                    f"LINEAR mode does not allow branching: {name} has {outgoing} outgoing edges",
                    node_id=node_id,
                ))
            if isinstance(kind, TriggerNode):
                continue
            if incoming > 1:
                issues.append(_issue(
                    "WF005",
                    f"LINEAR mode does not allow converging: {name} has {incoming} incoming edges",
                    node_id=node_id,
                ))
            elif incoming == 0 and outgoing > 0:
                issues.append(_issue(
                    "WF005",
                    f"LINEAR mode requires a single chain: {name} has no incoming edge",
                    node_id=node_id,
                ))

    def _check_dag_acyclic(self, dsl, graph, issues):
        if dsl.mode != WorkflowMode.DAG:
            return

        order = graph.topological_order()
        if len(order) == len(graph.nodes):
            return
        on_cycle = sorted(set(graph.nodes) - set(order))
        issues.append(_issue(
            "WF006",
            f"Cycle detected in DAG involving nodes: {', '.join(on_cycle)}",
            node_id=on_cycle[0],
        ))

    # ------------------------------------------------------------------
    # Mode and node-type rules
    # ------------------------------------------------------------------

    def _check_debate_mode(self, dsl, graph, issues):
        if dsl.mode != WorkflowMode.DEBATE:
            return

        present = {node.type for node in graph.nodes.values()}
        missing = [node_type for node_type in DEBATE_REQUIRED_TYPES if node_type not in present]
        if missing:
            issues.append(_issue(
                "WF101",
                f"DEBATE mode is missing required nodes: {', '.join(missing)}",
            ))

        judge_ids = {node.id for node in graph.of_type("judge-agent")}
        if not judge_ids:
            return
        for node_id, kind in graph.kinds.items():
            if not isinstance(kind, DebateRoundNode):
                continue
            if not graph.reachable_from(node_id) & judge_ids:
                issues.append(_issue(
                    "WF101",
                    f"No judge node is reachable from debate round: {kind.node.name}",
                    node_id=node_id,
                ))

    def _check_dag_convergence(self, dsl, graph, issues):
        if dsl.mode != WorkflowMode.DAG:
            return

        for node_id, preds in graph.predecessors.items():
            if len(set(preds)) < 2:
                continue
            node = graph.nodes[node_id]
            if node.type not in CONVERGENCE_NODE_TYPES:
                issues.append(_issue(
                    "WF102",
                    f"Converging branches into {node.name} require a join node",
                    node_id=node_id,
                ))

    def _check_approval_outputs(self, dsl, graph, issues):
        for node_id, kind in graph.kinds.items():
            if not isinstance(kind, ApprovalNode):
                continue
            for target_id in graph.successors[node_id]:
                target = graph.nodes[target_id]
                if target.type not in self.output_node_types:
                    issues.append(_issue(
                        "WF103",
                        f"Approval node {kind.node.name} may only lead to output nodes, "
                        f"found {target.type}",
                        node_id=node_id,
                    ))

    def _check_join_quorum(self, dsl, graph, issues):
        for node_id, kind in graph.kinds.items():
            if not isinstance(kind, JoinNode) or kind.join_policy != "QUORUM":
                continue
            quorum = kind.quorum_branches
            valid = isinstance(quorum, int) and not isinstance(quorum, bool) and quorum >= 2
            if not valid:
                issues.append(_issue(
                    "WF105",
                    "joinPolicy=QUORUM requires quorumBranches to be an integer >= 2",
                    node_id=node_id,
                ))

    def _check_run_policy_coverage(self, dsl, graph, issues):
        defaults: Dict[str, Any] = {}
        if dsl.run_policy and dsl.run_policy.node_defaults:
            defaults = dsl.run_policy.node_defaults.model_dump(by_alias=True, exclude_none=True)

        for node_id, kind in graph.kinds.items():
            node = kind.node
            if not node.enabled or isinstance(kind, TriggerNode):
                continue
            own: Dict[str, Any] = {}
            if node.runtime_policy:
                own = node.runtime_policy.model_dump(by_alias=True, exclude_none=True)
            missing = [
                name for name in RUN_POLICY_FIELDS
                if name not in own and node.config.get(name) is None and name not in defaults
            ]
            if missing:
                issues.append(_issue(
                    "WF106",
                    f"Run policy incomplete for {node.name}: missing {', '.join(missing)}",
                    node_id=node_id,
                ))

    def _check_risk_gate_exists(self, dsl, graph, issues):
        if not any(isinstance(kind, RiskGateNode) for kind in graph.kinds.values()):
            issues.append(_issue("WF104", "A risk-gate node is required before publishing"))

    # ------------------------------------------------------------------
    # Data contracts and expressions
    # ------------------------------------------------------------------

    def _check_data_edge_types(self, dsl, graph, issues):
        for edge in dsl.edges:
            if edge.edge_type != EdgeType.DATA:
                continue
            source = graph.nodes.get(edge.from_)
            target = graph.nodes.get(edge.to)
            if source is None or target is None:
                continue
            source_types = output_field_types(source)
            target_types = input_field_types(target)
            if not source_types or not target_types:
                continue

            pairs = _binding_pairs(target.input_bindings, source.id)
            if not pairs:
                pairs = [(path, path) for path in target_types]

            for target_path, source_path in pairs:
                source_type = resolve_field_type(source_types, source_path)
                target_type = resolve_field_type(target_types, target_path)
                if not source_type or not target_type:
                    continue
                if not is_type_compatible(source_type, target_type):
                    issues.append(_issue(
                        "WF201",
                        f"Data edge {edge.id} connects incompatible fields: "
                        f"{source.name}.{source_path}({source_type}) -> "
                        f"{target.name}.{target_path}({target_type})",
                        edge_id=edge.id,
                    ))

    def _check_input_binding_refs(self, dsl, graph, issues):
        for node_id, node in graph.nodes.items():
            if not node.input_bindings:
                continue
            for _, value in flatten_leaf_entries(node.input_bindings):
                if not isinstance(value, str):
                    continue
                for ref in extract_expression_refs(value):
                    if ref.scope in (PARAMS_SCOPE, META_SCOPE):
                        continue
                    source = graph.nodes.get(ref.scope)
                    if source is None:
                        issues.append(_issue(
                            "WF202",
                            f"Input binding of {node.name} references unknown node: {ref.scope}",
                            node_id=node_id,
                        ))
                        continue
                    source_types = output_field_types(source)
                    if source_types and not resolve_field_type(source_types, ref.path):
                        issues.append(_issue(
                            "WF202",
                            f"Input binding of {node.name} references unknown field: "
                            f"{ref.scope}.{ref.path}",
                            node_id=node_id,
                        ))

    def _check_parameter_bindings_declared(self, dsl, graph, issues):
        sources: List[Any] = []
        for node in dsl.nodes:
            sources.extend([node.config, node.input_bindings])
        sources.extend(edge.condition for edge in dsl.edges)

        codes = parameter_codes(refs_in(sources))
        if codes and not normalize_codes(dsl.param_set_bindings):
            issues.append(_issue(
                "WF203",
                f"Parameter expressions ({', '.join(sorted(codes))}) are used "
                f"but no paramSetBindings are declared",
            ))

    def _check_decision_merge_fan_in(self, dsl, graph, issues):
        for node_id, kind in graph.kinds.items():
            if not isinstance(kind, DecisionMergeNode):
                continue
            incoming = graph.in_degree[node_id]
            if incoming < 2:
                issues.append(_issue(
                    "WF204",
                    f"decision-merge node {kind.node.name} needs at least 2 incoming edges, "
                    f"found {incoming}",
                    node_id=node_id,
                ))

    def _check_condition_edges(self, dsl, graph, issues):
        for edge in dsl.edges:
            if edge.edge_type != EdgeType.CONDITION:
                continue
            condition = edge.condition
            message = None
            if condition is None:
                message = f"Condition edge {edge.id} requires a condition"
            elif isinstance(condition, bool):
                continue
            elif isinstance(condition, str):
                if not condition.strip():
                    message = f"Condition edge {edge.id} has a blank condition"
            elif isinstance(condition, dict):
                if not condition.get("field") or not condition.get("operator"):
                    message = f"Condition edge {edge.id} condition needs field and operator"
            else:
                message = (
                    f"Condition edge {edge.id} condition must be a boolean, string or object"
                )
            if message:
                issues.append(_issue("WF205", message, edge_id=edge.id))

    # ------------------------------------------------------------------
    # Publish-only rules
    # ------------------------------------------------------------------

    def _check_evidence_chain(self, dsl, graph, issues):
        node_types = [node.type for node in graph.nodes.values()]
        if "risk-gate" not in node_types:
            return

        missing = []
        if not any(is_data_fetch_type(node_type) for node_type in node_types):
            missing.append("data evidence")
        if not any(node_type in RULE_NODE_TYPES for node_type in node_types):
            missing.append("rule evidence")
        if not any(node_type in MODEL_EVIDENCE_TYPES for node_type in node_types):
            missing.append("model evidence")
        if missing:
            issues.append(_issue(
                "WF305",
                f"Evidence chain incomplete, missing: {', '.join(missing)}",
            ))

    def _check_experiment_config(self, dsl, graph, issues):
        experiment = dsl.experiment_config
        if not isinstance(experiment, dict) or experiment.get("enabled") is not True:
            return

        code = experiment.get("experimentCode")
        if not isinstance(code, str) or not code.strip():
            issues.append(_issue("WF306", "experimentConfig.enabled=true requires experimentCode"))

        variants = experiment.get("variants")
        variants = variants if isinstance(variants, list) else []
        if len(variants) < 2:
            issues.append(_issue(
                "WF306",
                "experimentConfig.enabled=true requires at least 2 variants",
            ))
            return

        total_traffic = 0.0
        for variant in variants:
            if not isinstance(variant, dict):
                issues.append(_issue("WF306", "experimentConfig.variants entries must be objects"))
                continue
            version = variant.get("version")
            if not isinstance(version, str) or not version.strip():
                issues.append(_issue(
                    "WF306",
                    "experimentConfig.variants[].version must be a non-empty string",
                ))
            traffic = variant.get("traffic")
            if not _is_number(traffic) or traffic <= 0:
                issues.append(_issue(
                    "WF306",
                    "experimentConfig.variants[].traffic must be a positive number",
                ))
                continue
            total_traffic += traffic

        if abs(total_traffic - 1) >= 1e-6 and abs(total_traffic - 100) >= 1e-6:
            issues.append(_issue(
                "WF306",
                f"experimentConfig.variants traffic must sum to 1 or 100, got {total_traffic:g}",
            ))

        if "splitPolicy" in experiment and experiment["splitPolicy"] not in SPLIT_POLICIES:
            issues.append(_issue(
                "WF306",
                f"experimentConfig.splitPolicy must be one of {'/'.join(SPLIT_POLICIES)}",
            ))

        auto_stop = experiment.get("autoStop")
        if isinstance(auto_stop, dict) and auto_stop.get("enabled") is True:
            threshold = auto_stop.get("badCaseThreshold")
            if not _is_number(threshold) or not 0 <= threshold <= 1:
                issues.append(_issue(
                    "WF306",
                    "experimentConfig.autoStop.badCaseThreshold must be within [0, 1]",
                ))


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _binding_pairs(input_bindings: Optional[Dict[str, Any]], source_node_id: str):
    """(target field path, source field path) pairs bound from `source_node_id`"""
    pairs = []
    for target_path, value in flatten_leaf_entries(input_bindings):
        if not isinstance(value, str):
            continue
        for ref in extract_expression_refs(value):
            if ref.scope == source_node_id:
                pairs.append((target_path, ref.path))
    return pairs


def normalize_codes(values: Iterable[Any]) -> List[str]:
    """Strip, drop blanks and de-duplicate binding codes, keeping first-seen order"""
    codes: List[str] = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        code = value.strip()
        if code and code not in codes:
            codes.append(code)
    return codes


def schema_issues(error: PydanticValidationError) -> List[ValidationIssue]:
    """One WF001 issue per schema error of a DSL that failed to parse"""
    issues = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "dsl"
        issues.append(_issue("WF001", f"Invalid DSL at {location}: {detail.get('msg')}"))
    return issues


_default_validator = WorkflowDslValidator()


def validate_workflow_dsl(dsl: DslInput,
                          stage: Union[ValidationStage, str] = ValidationStage.SAVE) -> ValidationResult:
    """Validate a DSL with the default output node types"""
    return _default_validator.validate(dsl, stage)
