# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template expression scanning.

Expressions are an untyped templating convention: `{{ scope.path | default }}`.
Malformed expressions (missing closing braces, no dot) simply do not match.

JSON values are walked with an explicit worklist instead of recursion, so
deeply nested configs cannot exhaust the interpreter stack.
"""

import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterable, Iterator, List, Optional, Set, Tuple


EXPRESSION_PATTERN = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")

PARAMS_SCOPE = "params"
META_SCOPE = "meta"


@dataclass(frozen=True)
class ExpressionRef:
    """A `scope.path` reference found inside a template expression"""
    scope: str
    path: str
    default: Optional[str] = None

    @property
    def head(self) -> str:
        """First dot-delimited segment of the path"""
        return self.path.split(".")[0].strip()


def extract_expression_refs(text: str) -> List[ExpressionRef]:
    """Find every `{{ scope.path }}` reference in a string"""
    refs: List[ExpressionRef] = []
    for match in EXPRESSION_PATTERN.finditer(text):
        raw_expr, _, raw_default = match.group(1).partition("|")
        expr = raw_expr.strip()
        dot_index = expr.find(".")
        if dot_index <= 0 or dot_index >= len(expr) - 1:
            continue
        scope = expr[:dot_index].strip()
        path = expr[dot_index + 1:].strip()
        if scope and path:
            refs.append(ExpressionRef(scope=scope, path=path, default=raw_default.strip() or None))
    return refs


def iter_string_leaves(value: Any) -> Iterator[str]:
    """Yield every string leaf of a JSON-like value (str | list | dict)"""
    pending: Deque[Any] = deque([value])
    while pending:
        current = pending.popleft()
        if isinstance(current, str):
            yield current
        elif isinstance(current, dict):
            pending.extend(current.values())
        elif isinstance(current, (list, tuple)):
            pending.extend(current)


def flatten_leaf_entries(value: Any) -> List[Tuple[str, Any]]:
    """
    Flatten nested mappings into (dotted.path, leaf) pairs.

    Lists are leaves; only mappings are descended into.
    """
    if not isinstance(value, dict):
        return []

    entries: List[Tuple[str, Any]] = []
    pending: Deque[Tuple[str, dict]] = deque([("", value)])
    while pending:
        prefix, mapping = pending.popleft()
        for key, child in mapping.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(child, dict):
                pending.append((path, child))
            else:
                entries.append((path, child))
    return entries


def refs_in(values: Iterable[Any]) -> List[ExpressionRef]:
    """All expression refs under any of the given JSON-like values"""
    refs: List[ExpressionRef] = []
    for value in values:
        for text in iter_string_leaves(value):
            refs.extend(extract_expression_refs(text))
    return refs


def parameter_codes(refs: Iterable[ExpressionRef]) -> Set[str]:
    """Parameter codes referenced through the `params` scope"""
    return {ref.head for ref in refs if ref.scope == PARAMS_SCOPE and ref.head}
