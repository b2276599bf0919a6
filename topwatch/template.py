"""%-directive template rendering for Telegram posts and AI prompts.

Supports:
    - %key% and %key|default% - substitution, default used when missing or empty
    - %IF key% ... %END_IF% - block rendered when key is truthy
    - %EACH key% ... %END_EACH% - block rendered once per list element
    - %% - literal percent

Rendering never fails. Unknown keys render as their default, malformed
directives are copied through as text.

Block ends are found by the first occurrence of the closing marker, so a
block cannot contain another block of the same kind.
"""

import dataclasses
import json
from typing import Any

EACH_OPEN = "%EACH "
EACH_CLOSE = "%END_EACH%"
IF_OPEN = "%IF "
IF_CLOSE = "%END_IF%"


def to_value(obj: Any) -> Any:
    """Convert records into plain JSON-like values (dict, list, str, ...)."""
    if hasattr(obj, "to_dict"):
        return to_value(obj.to_dict())
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return to_value(dataclasses.asdict(obj))
    if isinstance(obj, dict):
        return {str(k): to_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_value(v) for v in obj]
    return obj


def get_member(value: Any, name: str) -> Any:
    """Look up a field of a mapping value. Non-mappings have no members."""
    if isinstance(value, dict):
        return value.get(name)
    return None


def as_display_string(value: Any) -> str | None:
    """Text form of a value, or None for null."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def is_truthy(value: Any) -> bool:
    """Presence test used by %IF%.

    Only null and the empty string are false. Zero, empty lists and
    mappings, and boolean false all count as present.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def resolve(root: Any, local: Any, key: str) -> Any:
    """Resolve a key against the loop element first, then the root context."""
    if not key:
        return None
    if isinstance(local, dict) and key in local:
        return local[key]
    return get_member(root, key)


def _find_block(template: str, start: int, open_len: int, close: str) -> tuple[str, str, int] | None:
    """Locate the tag and body of a block directive starting at `start`.

    Returns (tag, body, end) where end is the index just past the closing
    marker, or None if the directive is unterminated.
    """
    tag_end = template.find("%", start + open_len)
    if tag_end < 0:
        return None
    tag = template[start + open_len:tag_end].strip()
    body_start = tag_end + 1
    body_end = template.find(close, body_start)
    if body_end < 0:
        return None
    return tag, template[body_start:body_end], body_end + len(close)


def render_block(template: str, root: Any, local: Any = None) -> str:
    """Render one template slice under the (root, local) scope."""
    out: list[str] = []
    i = 0
    n = len(template)
    while i < n:
        if template.startswith("%%", i):
            out.append("%")
            i += 2
            continue

        if template.startswith(EACH_OPEN, i):
            block = _find_block(template, i, len(EACH_OPEN), EACH_CLOSE)
            if block is not None:
                tag, body, i = block
                items = resolve(root, local, tag)
                if isinstance(items, (list, tuple)):
                    for item in items:
                        out.append(render_block(body, root, item))
                continue

        elif template.startswith(IF_OPEN, i):
            block = _find_block(template, i, len(IF_OPEN), IF_CLOSE)
            if block is not None:
                tag, body, i = block
                if is_truthy(resolve(root, local, tag)):
                    out.append(render_block(body, root, local))
                continue

        if template[i] == "%":
            end = template.find("%", i + 1)
            if end < 0 or template.startswith((EACH_OPEN, IF_OPEN), i):
                # Unterminated directive: keep the percent sign as text
                out.append("%")
                i += 1
                continue
            key, _, default = template[i + 1:end].partition("|")
            text = as_display_string(resolve(root, local, key.strip()))
            out.append(text if text else default)
            i = end + 1
            continue

        out.append(template[i])
        i += 1
    return "".join(out)


def render(template: str, context: Any) -> str:
    """Render a template against a context.

    The context is converted with to_value() first, so dataclass records
    can be passed directly.
    """
    return render_block(template, to_value(context))
