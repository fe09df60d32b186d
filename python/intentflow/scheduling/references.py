"""Deferred step references.

A step's params may point at the output of an upstream step, e.g. the
execute step of a swap needs the quote id produced by the quote step.
The reference is a string token of the form::

    {{<step_id>.output.<dotted.path>}}

A param value that is exactly one token is replaced by the referenced
value (any type).  Tokens embedded in a longer string are substituted by
their ``str()`` form.  Resolution happens immediately before dispatch,
against the results recorded so far.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Set

from intentflow.exceptions import StepExecutionError
from intentflow.models.workflow import SkillExecutionResult

_TOKEN = re.compile(r"\{\{\s*([^{}\s.]+)\.output((?:\.[^{}\s.]+)*)\s*\}\}")

_MISSING = object()


def make_reference(step_id: str, path: str = "") -> str:
    """Build a reference token for ``step_id``'s output at ``path``."""
    suffix = f".{path}" if path else ""
    return "{{" + f"{step_id}.output{suffix}" + "}}"


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and _TOKEN.search(value) is not None


def referenced_steps(params: Any) -> Set[str]:
    """All step ids referenced anywhere inside ``params``."""
    found: Set[str] = set()
    for text in _strings(params):
        found.update(m.group(1) for m in _TOKEN.finditer(text))
    return found


def rename_references(params: Any, mapping: Mapping[str, str]) -> Any:
    """Copy of ``params`` with referenced step ids rewritten via ``mapping``."""
    if isinstance(params, dict):
        return {k: rename_references(v, mapping) for k, v in params.items()}
    if isinstance(params, list):
        return [rename_references(v, mapping) for v in params]
    if isinstance(params, str):
        return _TOKEN.sub(
            lambda m: make_reference(mapping.get(m.group(1), m.group(1)), m.group(2).lstrip(".")),
            params,
        )
    return params


def resolve_params(
    params: Dict[str, Any],
    results: Mapping[str, SkillExecutionResult],
    step_id: str = "",
) -> Dict[str, Any]:
    """Return a copy of ``params`` with every reference substituted.

    Raises:
        StepExecutionError: if a referenced step has no successful result or
            its output has nothing at the requested path.
    """
    return {key: _resolve(value, results, step_id) for key, value in params.items()}


# ── Internal helpers ─────────────────────────────────────────────────


def _strings(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [s for v in value.values() for s in _strings(v)]
    if isinstance(value, (list, tuple)):
        return [s for v in value for s in _strings(v)]
    return []


def _resolve(value: Any, results: Mapping[str, SkillExecutionResult], step_id: str) -> Any:
    if isinstance(value, dict):
        return {k: _resolve(v, results, step_id) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, results, step_id) for v in value]
    if not isinstance(value, str):
        return value

    whole = _TOKEN.fullmatch(value.strip())
    if whole is not None:
        return _lookup(whole.group(1), whole.group(2), results, step_id)

    return _TOKEN.sub(
        lambda m: str(_lookup(m.group(1), m.group(2), results, step_id)), value
    )


def _lookup(
    source_id: str,
    dotted: str,
    results: Mapping[str, SkillExecutionResult],
    step_id: str,
) -> Any:
    result = results.get(source_id)
    if result is None or not result.success:
        raise StepExecutionError(
            f"Unresolved reference: step {source_id} has no successful result",
            step_id=step_id or None,
        )

    current: Any = result.output
    for part in filter(None, dotted.split(".")):
        current = _child(current, part)
        if current is _MISSING:
            raise StepExecutionError(
                f"Unresolved reference: output of {source_id} has no '{dotted.lstrip('.')}'",
                step_id=step_id or None,
            )
    return current


def _child(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key, _MISSING)
    if isinstance(container, (list, tuple)) and key.isdigit():
        index = int(key)
        return container[index] if index < len(container) else _MISSING
    return getattr(container, key, _MISSING)
