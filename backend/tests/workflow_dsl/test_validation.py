# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for structural DSL validation
"""

import pytest

from flowgate.workflow_dsl.models import ValidationStage, WorkflowDsl
from flowgate.workflow_dsl.validation import (
    WorkflowDslValidator,
    WorkflowGraph,
    validate_workflow_dsl,
)

from tests.dsl_factory import NODE_DEFAULTS, chain, edge, make_dsl, node, publishable_dsl


def issue_pairs(result):
    return [(issue.code, issue.node_id) for issue in result.issues]


class TestGraphShape:
    """WF001-WF006"""

    def test_publishable_dsl_is_valid_at_both_stages(self):
        dsl = publishable_dsl()
        assert validate_workflow_dsl(dsl, ValidationStage.SAVE).valid
        assert validate_workflow_dsl(dsl, ValidationStage.PUBLISH).valid

    def test_accepts_parsed_model_and_string_stage(self):
        dsl = WorkflowDsl.model_validate(publishable_dsl())
        result = validate_workflow_dsl(dsl, "PUBLISH")
        assert result.valid
        assert result.issues == []

    def test_missing_top_level_fields(self):
        result = validate_workflow_dsl({"nodes": [], "edges": []})

        assert not result.valid
        assert result.codes() == ["WF001"]
        message = result.issues[0].message
        for field_name in ("workflowId", "name", "mode", "nodes", "edges"):
            assert field_name in message

    def test_unparseable_dsl_reports_wf001_instead_of_raising(self):
        result = validate_workflow_dsl({"workflowId": "wf", "nodes": [{"id": "a"}]})

        assert not result.valid
        assert result.codes()
        assert set(result.codes()) == {"WF001"}

    def test_duplicate_node_and_edge_ids(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("a", "task")]
        edges = [edge("t", "a"), edge("t", "a")]
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG"))

        duplicates = [issue for issue in result.issues if issue.code == "WF002"]
        assert len(duplicates) == 2
        assert {issue.node_id for issue in duplicates} == {"a", None}
        assert {issue.edge_id for issue in duplicates} == {None, "e_t_a"}

    def test_edge_to_unknown_node(self):
        nodes = [node("t", "manual-trigger"), node("a", "task")]
        edges = [edge("t", "a"), edge("a", "ghost")]
        result = validate_workflow_dsl(make_dsl(nodes, edges))

        assert not result.valid
        assert result.codes() == ["WF003"]
        assert result.issues[0].edge_id == "e_a_ghost"
        assert "ghost" in result.issues[0].message

    def test_dangling_node(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("lonely", "task")]
        result = validate_workflow_dsl(make_dsl(nodes, [edge("t", "a")], mode="DAG"))

        assert issue_pairs(result) == [("WF004", "lonely")]

    def test_trigger_without_edges_is_not_dangling(self):
        nodes = [node("t", "manual-trigger"), node("t2", "cron-trigger"), node("a", "task")]
        result = validate_workflow_dsl(make_dsl(nodes, [edge("t", "a")], mode="DAG"))

        assert result.valid

    def test_linear_branching(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("b", "task")]
        edges = [edge("t", "a"), edge("t", "b")]
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="LINEAR"))

        assert issue_pairs(result) == [("WF005", "t")]

    def test_linear_converging_and_headless_nodes(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("b", "task"), node("c", "task")]
        edges = [edge("t", "a"), edge("a", "c"), edge("b", "c")]
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="LINEAR"))

        assert not result.valid
        assert set(result.codes()) == {"WF005"}
        assert {issue.node_id for issue in result.issues} == {"b", "c"}

    def test_same_shape_is_fine_outside_linear_mode(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("b", "task")]
        edges = [edge("t", "a"), edge("t", "b")]
        assert validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG")).valid

    def test_dag_cycle(self):
        nodes = [node("t", "manual-trigger"), node("a", "join"), node("b", "task")]
        edges = [edge("t", "a"), edge("a", "b"), edge("b", "a")]
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG"))

        cycle = [issue for issue in result.issues if issue.code == "WF006"]
        assert len(cycle) == 1
        assert "a" in cycle[0].message and "b" in cycle[0].message


class TestModeRules:
    """WF101-WF106"""

    @pytest.fixture
    def split_merge(self):
        nodes = [
            node("trigger", "manual-trigger"),
            node("splitA", "task"),
            node("splitB", "task"),
            node("merge", "task"),
        ]
        edges = [
            edge("trigger", "splitA"),
            edge("trigger", "splitB"),
            edge("splitA", "merge"),
            edge("splitB", "merge"),
        ]
        return nodes, edges

    def test_dag_convergence_requires_join(self, split_merge):
        nodes, edges = split_merge
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG"))

        assert result.valid is False
        assert issue_pairs(result) == [("WF102", "merge")]

    @pytest.mark.parametrize("merge_type", ["join", "decision-merge"])
    def test_dag_convergence_into_merge_node(self, split_merge, merge_type):
        nodes, edges = split_merge
        nodes[-1]["type"] = merge_type
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG"))

        assert result.valid

    def test_debate_requires_core_nodes(self):
        nodes = [node("t", "manual-trigger"), node("round", "debate-round"), node("out", "notify")]
        result = validate_workflow_dsl(make_dsl(nodes, chain(["t", "round", "out"]), mode="DEBATE"))

        assert result.codes() == ["WF101"]
        assert "context-builder" in result.issues[0].message
        assert "judge-agent" in result.issues[0].message

    def test_debate_round_must_reach_judge(self):
        nodes = [
            node("t", "manual-trigger"),
            node("ctx", "context-builder"),
            node("judge", "judge-agent"),
            node("round", "debate-round"),
            node("out", "notify"),
        ]
        ids = ["t", "ctx", "judge", "round", "out"]
        result = validate_workflow_dsl(make_dsl(nodes, chain(ids), mode="DEBATE"))

        assert issue_pairs(result) == [("WF101", "round")]

    def test_debate_round_reaching_judge_is_valid(self):
        nodes = [
            node("t", "manual-trigger"),
            node("ctx", "context-builder"),
            node("round", "debate-round"),
            node("judge", "judge-agent"),
            node("out", "notify"),
        ]
        ids = ["t", "ctx", "round", "judge", "out"]
        assert validate_workflow_dsl(make_dsl(nodes, chain(ids), mode="DEBATE")).valid

    def test_approval_must_lead_to_output(self):
        nodes = [node("t", "manual-trigger"), node("ok", "approval"), node("agent", "single-agent")]
        result = validate_workflow_dsl(make_dsl(nodes, chain(["t", "ok", "agent"])))

        assert issue_pairs(result) == [("WF103", "ok")]

    def test_approval_output_types_are_configurable(self):
        nodes = [node("t", "manual-trigger"), node("ok", "approval"), node("hook", "webhook-out")]
        dsl = make_dsl(nodes, chain(["t", "ok", "hook"]))

        assert not validate_workflow_dsl(dsl).valid
        assert WorkflowDslValidator(output_node_types=["notify", "webhook-out"]).validate(dsl).valid

    def test_risk_gate_required_only_at_publish(self):
        dsl = publishable_dsl()
        dsl["nodes"][4]["type"] = "review-step"

        assert validate_workflow_dsl(dsl, "SAVE").valid
        assert validate_workflow_dsl(dsl, "PUBLISH").codes() == ["WF104"]

    @pytest.mark.parametrize("quorum, valid", [(1, False), (True, False), ("3", False), (None, False), (2, True)])
    def test_quorum_join(self, quorum, valid):
        join_config = {"joinPolicy": "QUORUM"}
        if quorum is not None:
            join_config["quorumBranches"] = quorum
        nodes = [
            node("t", "manual-trigger"),
            node("a", "task"),
            node("b", "task"),
            node("j", "join", **join_config),
        ]
        edges = [edge("t", "a"), edge("t", "b"), edge("a", "j"), edge("b", "j")]
        result = validate_workflow_dsl(make_dsl(nodes, edges, mode="DAG"))

        assert result.valid is valid
        if not valid:
            assert issue_pairs(result) == [("WF105", "j")]

    def test_run_policy_coverage_at_publish(self):
        dsl = publishable_dsl()
        del dsl["runPolicy"]
        dsl["nodes"][5]["runtimePolicy"] = dict(NODE_DEFAULTS)
        dsl["nodes"][1]["config"].update(NODE_DEFAULTS)

        assert validate_workflow_dsl(dsl, "SAVE").valid
        result = validate_workflow_dsl(dsl, "PUBLISH")
        assert set(result.codes()) == {"WF106"}
        assert [issue.node_id for issue in result.issues] == ["rules", "agent", "gate"]

    def test_run_policy_partially_covered_by_defaults(self):
        dsl = publishable_dsl(runPolicy={"nodeDefaults": {"timeoutMs": 5000, "retryCount": 0}})
        result = validate_workflow_dsl(dsl, "PUBLISH")

        assert set(result.codes()) == {"WF106"}
        assert "retryBackoffMs" in result.issues[0].message
        assert "timeoutMs" not in result.issues[0].message

    def test_disabled_nodes_skip_run_policy(self):
        dsl = publishable_dsl()
        del dsl["runPolicy"]
        for raw in dsl["nodes"][1:]:
            raw["enabled"] = False
        result = validate_workflow_dsl(dsl, "PUBLISH")

        assert "WF106" not in result.codes()


class TestDataContracts:
    """WF201-WF205"""

    def _data_pair(self, target_type, **target_extra):
        source = node("src", "data-fetch")
        source["outputSchema"] = {"properties": {"score": {"type": "number"}, "label": {"type": "string"}}}
        target = node("dst", "task", inputSchema={"score": target_type})
        target.update(target_extra)
        nodes = [node("t", "manual-trigger"), source, target]
        edges = [edge("t", "src"), edge("src", "dst", edgeType="data-edge")]
        return make_dsl(nodes, edges)

    def test_incompatible_data_edge(self):
        result = validate_workflow_dsl(self._data_pair("string"))

        assert result.codes() == ["WF201"]
        assert result.issues[0].edge_id == "e_src_dst"

    @pytest.mark.parametrize("target_type", ["number", "integer", "float", "unknown", "mystery"])
    def test_compatible_data_edge(self, target_type):
        assert validate_workflow_dsl(self._data_pair(target_type)).valid

    def test_data_edge_follows_input_bindings(self):
        dsl = self._data_pair("number", inputBindings={"score": "{{ src.label }}"})
        result = validate_workflow_dsl(dsl)

        assert result.codes() == ["WF201"]
        assert "label" in result.issues[0].message

    def test_binding_to_unknown_node(self):
        nodes = [node("t", "manual-trigger"), node("a", "task")]
        nodes[1]["inputBindings"] = {"value": "{{ ghost.value }}"}
        result = validate_workflow_dsl(make_dsl(nodes, [edge("t", "a")]))

        assert issue_pairs(result) == [("WF202", "a")]

    def test_binding_to_undeclared_field(self):
        source = node("src", "data-fetch", outputFields={"score": "number"})
        target = node("dst", "task")
        target["inputBindings"] = {"nested": {"score": "{{ src.score }}", "other": "{{ src.missing }}"}}
        nodes = [node("t", "manual-trigger"), source, target]
        result = validate_workflow_dsl(make_dsl(nodes, chain(["t", "src", "dst"])))

        assert issue_pairs(result) == [("WF202", "dst")]
        assert "src.missing" in result.issues[0].message

    def test_binding_scopes_params_and_meta_are_not_nodes(self):
        target = node("dst", "task")
        target["inputBindings"] = {"run": "{{ meta.runId }}", "limit": "{{ params.limit }}"}
        nodes = [node("t", "manual-trigger"), target]
        dsl = make_dsl(nodes, [edge("t", "dst")], paramSetBindings=["PS_LIMITS"])

        assert validate_workflow_dsl(dsl).valid

    def test_parameter_expressions_need_param_set_bindings(self):
        nodes = [node("t", "manual-trigger"), node("a", "task", limit="{{ params.limit | 10 }}")]
        dsl = make_dsl(nodes, [edge("t", "a")])

        result = validate_workflow_dsl(dsl)
        assert result.codes() == ["WF203"]
        assert "limit" in result.issues[0].message

        dsl["paramSetBindings"] = ["  ", ""]
        assert validate_workflow_dsl(dsl).codes() == ["WF203"]

    def test_decision_merge_fan_in(self):
        nodes = [node("t", "manual-trigger"), node("m", "decision-merge"), node("out", "notify")]
        result = validate_workflow_dsl(make_dsl(nodes, chain(["t", "m", "out"])))

        assert issue_pairs(result) == [("WF204", "m")]

    @pytest.mark.parametrize("condition, valid", [
        (None, False),
        ("   ", False),
        ({"field": "score"}, False),
        (42, False),
        ("score > 3", True),
        (True, True),
        ({"field": "score", "operator": "gt", "value": 3}, True),
    ])
    def test_condition_edge(self, condition, valid):
        extra = {"edgeType": "condition-edge"}
        if condition is not None:
            extra["condition"] = condition
        nodes = [node("t", "manual-trigger"), node("a", "task")]
        result = validate_workflow_dsl(make_dsl(nodes, [edge("t", "a", **extra)]))

        assert result.valid is valid
        if not valid:
            assert result.codes() == ["WF205"]


class TestPublishRules:
    """WF305-WF306"""

    def test_evidence_chain_needs_model_evidence(self):
        dsl = publishable_dsl()
        dsl["nodes"] = [raw for raw in dsl["nodes"] if raw["id"] != "agent"]
        dsl["edges"] = chain([raw["id"] for raw in dsl["nodes"]])

        assert validate_workflow_dsl(dsl, "SAVE").valid
        result = validate_workflow_dsl(dsl, "PUBLISH")
        assert result.codes() == ["WF305"]
        assert "model evidence" in result.issues[0].message

    def test_valid_experiment(self):
        dsl = publishable_dsl(experimentConfig={
            "enabled": True,
            "experimentCode": "EXP_1",
            "variants": [{"version": "1.0.0", "traffic": 50}, {"version": "1.0.1", "traffic": 50}],
            "splitPolicy": "USER_HASH",
            "autoStop": {"enabled": True, "badCaseThreshold": 0.2},
        })
        assert validate_workflow_dsl(dsl, "PUBLISH").valid

    def test_disabled_experiment_is_ignored(self):
        dsl = publishable_dsl(experimentConfig={"enabled": False})
        assert validate_workflow_dsl(dsl, "PUBLISH").valid

    def test_invalid_experiment(self):
        dsl = publishable_dsl(experimentConfig={
            "enabled": True,
            "variants": [{"version": "1.0.0", "traffic": 0.5}, {"version": "", "traffic": 0.2}],
            "splitPolicy": "ROUND_ROBIN",
            "autoStop": {"enabled": True, "badCaseThreshold": 2},
        })
        assert validate_workflow_dsl(dsl, "SAVE").valid

        result = validate_workflow_dsl(dsl, "PUBLISH")
        assert set(result.codes()) == {"WF306"}
        messages = " ".join(issue.message for issue in result.issues)
        assert "experimentCode" in messages
        assert "version" in messages
        assert "sum to 1 or 100" in messages
        assert "splitPolicy" in messages
        assert "badCaseThreshold" in messages

    def test_experiment_needs_two_variants(self):
        dsl = publishable_dsl(experimentConfig={
            "enabled": True,
            "experimentCode": "EXP_1",
            "variants": [{"version": "1.0.0", "traffic": 100}],
        })
        result = validate_workflow_dsl(dsl, "PUBLISH")

        assert result.codes() == ["WF306"]

    def test_stage_names_are_case_insensitive(self):
        dsl = publishable_dsl()
        dsl["nodes"] = [raw for raw in dsl["nodes"] if raw["id"] != "gate"]
        dsl["edges"] = chain([raw["id"] for raw in dsl["nodes"]])

        assert validate_workflow_dsl(dsl, "publish").codes() == ["WF104"]
        assert validate_workflow_dsl(dsl, " Save ").valid
        assert ValidationStage("publish") is ValidationStage.PUBLISH

    def test_unknown_stage_is_reported_not_raised(self):
        result = validate_workflow_dsl(publishable_dsl(), "DEPLOY")

        assert not result.valid
        assert result.codes() == ["WF001"]
        assert "DEPLOY" in result.issues[0].message


class TestGraphHelpers:

    def test_unknown_node_types_only_take_part_in_generic_checks(self):
        nodes = [node("t", "manual-trigger"), node("x", "custom-magic", anything={"deep": [1, 2]}),
                 node("out", "notify")]
        assert validate_workflow_dsl(make_dsl(nodes, chain(["t", "x", "out"]))).valid

    def test_reachability_and_order(self):
        nodes = [node("t", "manual-trigger"), node("a", "task"), node("b", "task")]
        dsl = WorkflowDsl.model_validate(make_dsl(nodes, chain(["t", "a", "b"])))
        graph = WorkflowGraph.build(dsl)

        assert graph.reachable_from("t") == {"a", "b"}
        assert graph.reachable_from("b") == set()
        assert graph.topological_order() == ["t", "a", "b"]
