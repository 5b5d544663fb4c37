"""Name card field schema.

FIELD_LABELS is the single source of truth for:
- the extraction tool's parameter schema (one required string per key),
- the order of lines in the chat reply,
- the record keys that sheet header columns resolve to.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

TOOL_NAME = "extract_namecard_data"
TOOL_DESCRIPTION = "Extract structured data from name card to be inserted into a CRM"

REMARKS_KEY = "remarks"
SUCCESS_HEADER = "✅ Name Card Extracted"

FIELD_LABELS: dict[str, str] = {
    "full_name": "Full Name",
    "first_name": "First Name",
    "email": "Email",
    "company": "Company",
    "mobile": "Mobile",
    REMARKS_KEY: "Remarks",
}

_blank_labels = [key for key, label in FIELD_LABELS.items() if not label.strip()]
if _blank_labels:
    raise RuntimeError(f"Field labels must not be blank: {', '.join(_blank_labels)}")


def build_tool_parameters() -> dict[str, Any]:
    """JSON schema for the extraction tool, generated from FIELD_LABELS."""
    return {
        "type": "object",
        "properties": {
            key: {"type": "string", "description": label}
            for key, label in FIELD_LABELS.items()
        },
        "required": list(FIELD_LABELS),
    }


def build_tools() -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "name": TOOL_NAME,
            "description": TOOL_DESCRIPTION,
            "parameters": build_tool_parameters(),
        }
    ]


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def normalize_record(payload: Mapping[str, Any]) -> dict[str, str]:
    """Coerce tool-call arguments to a str -> str record, dropping nulls."""
    return {str(key): _stringify(value) for key, value in payload.items() if value is not None}


def format_record(record: Mapping[str, str]) -> str:
    """Render a record as the chat reply.

    One ``Label: value`` line per non-blank field in FIELD_LABELS order,
    with remarks last after a blank line.
    """
    lines = [SUCCESS_HEADER, ""]
    for key, label in FIELD_LABELS.items():
        if key == REMARKS_KEY:
            continue
        value = record.get(key, "")
        if value and value.strip():
            lines.append(f"{label}: {value}")

    text = "\n".join(lines) + "\n"

    remarks = record.get(REMARKS_KEY, "")
    if remarks and remarks.strip():
        text += f"\n{FIELD_LABELS[REMARKS_KEY]}: {remarks}\n"
    return text
