"""
CSV parsing for bulk device import.

Format: plain text, one ``username,password`` pair per line, no header.
Blank lines are skipped and every field is trimmed.  Validation is
all-or-nothing: if any line is bad, every bad line is reported (by its
1-indexed position in the submitted text) and nothing is returned.
"""

import pydantic

from device_portal.core.errors import ValidationError
from device_portal.schemas import CSVDeviceRow

FORMAT_HINT = 'Invalid format. Expected "username,password"'


def _describe(exc: pydantic.ValidationError) -> str:
    messages = []
    for err in exc.errors():
        field = err["loc"][0] if err["loc"] else "row"
        if err["type"] == "string_too_long":
            limit = err.get("ctx", {}).get("max_length")
            messages.append(f"Device {field} is too long (max {limit} characters)")
        elif err["type"] == "string_too_short":
            messages.append(f"Device {field} is required")
        else:
            messages.append(f"Device {field}: {err['msg']}")
    return ", ".join(messages)


def parse_device_csv(raw_text: str) -> list[CSVDeviceRow]:
    """Parse and validate *raw_text*.  Raises ValidationError on any bad line."""
    if raw_text is None or not raw_text.strip():
        raise ValidationError("CSV data is required")

    rows: list[CSVDeviceRow] = []
    line_errors: list[dict] = []

    for line_no, line in enumerate(raw_text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue

        parts = [part.strip() for part in line.split(",")]
        # Extra columns are ignored, as in "username,password,notes"
        if len(parts) < 2 or not parts[0] or not parts[1]:
            line_errors.append({"line": line_no, "reason": FORMAT_HINT})
            continue

        try:
            rows.append(CSVDeviceRow(username=parts[0], password=parts[1]))
        except pydantic.ValidationError as exc:
            line_errors.append({"line": line_no, "reason": _describe(exc)})

    if line_errors:
        summary = "\n".join(f"Line {e['line']}: {e['reason']}" for e in line_errors)
        raise ValidationError(f"Validation errors:\n{summary}", lines=line_errors)

    if not rows:
        raise ValidationError("No valid devices found in CSV data")

    return rows
