"""Field-path quoting for update masks, filters, ordering and projections.

A field-path segment matching [A-Za-z_][A-Za-z_0-9]* is written as-is; any
other segment is wrapped in backticks with backslash and backtick escaped.
"""

import re

_SIMPLE_SEGMENT = re.compile(r"[A-Za-z_][A-Za-z_0-9]*")


def quote_field_path(name: str) -> str:
    """Return name as a single field-path segment ('a.b' -> '`a.b`')."""
    if _SIMPLE_SEGMENT.fullmatch(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def dotted_field_path(path: str) -> str:
    """Quote each dot-separated segment of a nested path.

    'address.zip-code' -> 'address.`zip-code`'. A path that already contains
    a backtick is taken to be quoted by the caller and returned unchanged.
    """
    if "`" in path:
        return path
    return ".".join(quote_field_path(segment) for segment in path.split("."))
