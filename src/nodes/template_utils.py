"""Template resolution for node parameters.

Resolves ``{{dotted.path}}`` patterns against the current item and
``{{env.VAR}}`` from os.environ, recursively over strings, dicts and lists.
"""

import os
import re
from typing import Any, Dict

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+(?:\.\w+)*)\s*\}\}")
_MISSING = object()


def _lookup(path: str, context: Dict[str, Any]) -> Any:
    if path.startswith("env."):
        return os.environ.get(path[4:], _MISSING)

    current: Any = context
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            idx = int(part)
            current = current[idx] if idx < len(current) else _MISSING
        else:
            return _MISSING
        if current is _MISSING or current is None:
            return _MISSING
    return current


def resolve_templates(value: Any, context: Dict[str, Any]) -> Any:
    """Resolve ``{{path.to.var}}`` placeholders in *value*.

    A string that is exactly one placeholder resolves to the referenced value
    itself (keeping its type); placeholders embedded in text are stringified.
    Unresolved placeholders are left as-is.
    """
    if isinstance(value, str):
        whole = _PLACEHOLDER.fullmatch(value.strip())
        if whole:
            found = _lookup(whole.group(1), context)
            return value if found is _MISSING else found

        def _replacer(match: re.Match) -> str:
            found = _lookup(match.group(1), context)
            return match.group(0) if found is _MISSING else str(found)

        return _PLACEHOLDER.sub(_replacer, value)

    if isinstance(value, dict):
        return {k: resolve_templates(v, context) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_templates(item, context) for item in value]

    return value
