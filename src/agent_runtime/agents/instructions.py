"""
Instruction templating against session state.

- ``{key}``  replaced by ``state[key]``; left literally in place if missing
- ``{key?}`` replaced by ``state[key]``; empty if missing

Keys may carry a scope prefix, e.g. ``{user:name}``.
"""

import re
from collections.abc import Mapping
from typing import Any

_TEMPLATE_VAR = re.compile(r"\{([A-Za-z_][\w:]*)(\?)?\}")


def render_instruction(template: str, state: Mapping[str, Any]) -> str:
    """Render an instruction template against a state mapping."""
    if not template:
        return template

    def _replace(match: re.Match[str]) -> str:
        key, optional = match.group(1), match.group(2)
        if key in state:
            value = state[key]
            return "" if value is None else str(value)
        if optional:
            return ""
        return match.group(0)

    return _TEMPLATE_VAR.sub(_replace, template)
