# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DSL Canonicalizer

Stamps a definition's identity fields onto a DSL snapshot, or synthesizes the
default skeleton when no snapshot is supplied. Identity fields always come
from the caller, never from the snapshot, so re-applying the same identity is
a no-op.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from flowgate.core.config import Config, get_config

from .models import (
    TemplateSource,
    UsageMethod,
    WorkflowDsl,
    WorkflowMode,
)


RawDsl = Union[WorkflowDsl, Mapping[str, Any], None]

SKELETON_VERSION = "1.0.0"


def _trigger_node() -> Dict[str, Any]:
    return {"id": "n_trigger", "type": "manual-trigger", "name": "Manual trigger", "config": {}}


def _notify_node() -> Dict[str, Any]:
    return {
        "id": "n_notify",
        "type": "notify",
        "name": "Publish result",
        "config": {"channels": ["DASHBOARD"]},
    }


def _chain(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Control edges linking the nodes in order"""
    edges = []
    for source, target in zip(nodes, nodes[1:]):
        suffix = f"{source['id'][2:]}_{target['id'][2:]}"
        edges.append({
            "id": f"e_{suffix}",
            "from": source["id"],
            "to": target["id"],
            "edgeType": "control-edge",
        })
    return edges


def skeleton_nodes(mode: WorkflowMode) -> List[Dict[str, Any]]:
    """
    Default node chain for a brand-new workflow.

    Every mode starts at a manual trigger and ends at a notify node. DEBATE
    also needs its context-builder, debate-round and judge-agent in between.
    """
    nodes = [_trigger_node()]
    if WorkflowMode(mode) == WorkflowMode.DEBATE:
        nodes.extend([
            {"id": "n_context", "type": "context-builder", "name": "Build context", "config": {}},
            {"id": "n_debate", "type": "debate-round", "name": "Debate round", "config": {"maxRounds": 3}},
            {"id": "n_judge", "type": "judge-agent", "name": "Judge", "config": {}},
        ])
    nodes.append(_notify_node())
    return nodes


def build_skeleton(mode: WorkflowMode, config: Optional[Config] = None) -> Dict[str, Any]:
    """Default DSL body (without identity fields) for `mode`"""
    config = config or get_config()
    nodes = skeleton_nodes(mode)
    return {
        "version": SKELETON_VERSION,
        "status": "DRAFT",
        "nodes": nodes,
        "edges": _chain(nodes),
        "runPolicy": {"nodeDefaults": config.default_node_policy()},
    }


def canonicalize(
    dsl: RawDsl,
    *,
    workflow_id: str,
    name: str,
    mode: Union[WorkflowMode, str],
    usage_method: Union[UsageMethod, str, None] = None,
    owner_user_id: Optional[str] = None,
    template_source: Union[TemplateSource, str, None] = None,
    config: Optional[Config] = None,
) -> WorkflowDsl:
    """
    Return `dsl` with the given identity stamped on it.

    Raises pydantic.ValidationError when a raw mapping does not parse.
    """
    identity = {
        "workflowId": workflow_id,
        "name": name,
        "mode": WorkflowMode(mode).value,
        "usageMethod": UsageMethod(usage_method).value if usage_method else None,
        "ownerUserId": owner_user_id,
        "templateSource": TemplateSource(template_source).value if template_source else None,
    }

    if dsl is None:
        body = build_skeleton(WorkflowMode(mode), config)
    elif isinstance(dsl, WorkflowDsl):
        body = dsl.to_snapshot()
    else:
        body = dict(dsl)

    body.update(identity)
    return WorkflowDsl.model_validate(body)
