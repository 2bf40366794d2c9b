"""Render decoded property lists in the indented text shape of ``plutil -p``.

Used when ``plutil`` itself is not installed, so the field patterns in
``masverify.src.core.extractor`` see the same text either way.
"""

from datetime import datetime, timezone
from typing import Any, List

INDENT = "  "


def _format_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%d %H:%M:%S +0000")


def _format_data(value: bytes) -> str:
    if len(value) <= 24:
        return f"{{length = {len(value)}, bytes = 0x{value.hex()}}}"
    return (
        f"{{length = {len(value)}, bytes = 0x{value[:8].hex()} ... {value[-4:].hex()}}}"
    )


def _render(value: Any, depth: int, lines: List[str], prefix: str) -> None:
    pad = INDENT * depth
    if isinstance(value, dict):
        lines.append(f"{pad}{prefix}{{")
        for key in sorted(value):
            _render(value[key], depth + 1, lines, f'"{key}" => ')
        lines.append(f"{pad}}}")
    elif isinstance(value, (list, tuple)):
        lines.append(f"{pad}{prefix}[")
        for index, item in enumerate(value):
            _render(item, depth + 1, lines, f"{index} => ")
        lines.append(f"{pad}]")
    elif isinstance(value, bool):
        lines.append(f"{pad}{prefix}{'true' if value else 'false'}")
    elif isinstance(value, datetime):
        lines.append(f"{pad}{prefix}{_format_date(value)}")
    elif isinstance(value, (bytes, bytearray)):
        lines.append(f"{pad}{prefix}{_format_data(bytes(value))}")
    elif isinstance(value, str):
        lines.append(f'{pad}{prefix}"{value}"')
    else:
        lines.append(f"{pad}{prefix}{value}")


def render_plist_text(value: Any) -> str:
    lines: List[str] = []
    _render(value, 0, lines, "")
    return "\n".join(lines)
