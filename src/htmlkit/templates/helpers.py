"""Built-in helpers available to every template."""

import json
from collections.abc import Mapping
from typing import Any

from jinja2 import Undefined

from .loop import iterate


def _json_default(value: Any) -> Any:
    if isinstance(value, Undefined):
        return None
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def to_json(value: Any, pretty: bool = False) -> str:
    """Serialize a value to JSON.

    Args:
        value: Value to serialize
        pretty: Indent with two spaces instead of emitting compact JSON

    Returns:
        JSON text, with non-ASCII characters kept as-is
    """
    if isinstance(value, Undefined):
        value = None
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False, default=_json_default)
    return json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, default=_json_default
    )


def class_list(spec: Any) -> str:
    """Build a space separated class list.

    Accepts strings, ``(name, condition)`` pairs, mappings of name to
    condition, or a list mixing those.
    """
    if spec is None or isinstance(spec, Undefined):
        return ""
    if isinstance(spec, str):
        return spec.strip()
    if isinstance(spec, Mapping):
        return " ".join(str(name) for name, enabled in spec.items() if enabled)

    names = []
    for item in spec:
        if isinstance(item, (tuple, list)) and len(item) == 2:
            name, enabled = item
            if enabled and not isinstance(enabled, Undefined):
                names.append(str(name))
        elif isinstance(item, Mapping):
            names.extend(str(name) for name, enabled in item.items() if enabled)
        elif item and not isinstance(item, Undefined):
            names.append(str(item))
    return " ".join(names)


def register_helpers(env: Any) -> None:
    """Register helper globals and filters with a Jinja2 environment.

    Args:
        env: Jinja2 Environment instance
    """
    env.globals["_hk_iterate"] = iterate
    env.globals["_hk_json"] = to_json
    env.globals["_hk_class"] = class_list

    env.filters["json"] = to_json
    env.filters["class_list"] = class_list
