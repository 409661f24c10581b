"""Best-effort repair for JSON truncated mid-stream."""

from __future__ import annotations

import re
from typing import Optional

_TRAILING_COMMA = re.compile(r",\s*$")
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a markdown ```json fence wrapped around the payload."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def repair_truncated_json(text: str) -> Optional[str]:
    """
    Close the braces of a truncated JSON object.

    Only handles the truncation case: more `{` than `}`. A trailing
    dangling comma is dropped before the missing braces are appended.
    Balanced (or over-closed) text is a different kind of parse failure
    and yields None.

    Example:
        >>> repair_truncated_json('{"a": {"b": 1,')
        '{"a": {"b": 1}}'
        >>> repair_truncated_json('{a:1}') is None
        True
    """
    fixed = text.strip()
    missing = fixed.count("{") - fixed.count("}")
    if missing <= 0:
        return None

    fixed = _TRAILING_COMMA.sub("", fixed)
    return fixed + "}" * missing
