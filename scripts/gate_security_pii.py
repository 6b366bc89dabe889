#!/usr/bin/env python3
"""Personal-data gate for runtime code under src/.

Fails if:
- print( appears in runtime code
- a logger call mentions guest personal data (e-mail, name, national ID,
  observations) or a raw request body without going through the redaction
  helpers

Logger calls are inspected as a whole, including their continuation lines,
since ``extra_fields`` dicts usually span several lines.

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

SENSITIVE_KEYWORDS = (
    "email",
    "full_name",
    "national_id",
    "nationalid",
    "observations",
    "request.body",
    "request.json",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
)


def _call_text(lines: list[str], start: int) -> str:
    """Source of the call opened on ``lines[start]``, up to its closing paren."""
    depth = 0
    chunk: list[str] = []
    for line in lines[start:]:
        code = line.split("#")[0]
        chunk.append(code)
        depth += code.count("(") - code.count(")")
        if depth <= 0:
            break
    return "\n".join(chunk)


def check_file(filepath: Path) -> list[str]:
    """Return one message per violation found in ``filepath``."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors = []
    lines = content.splitlines()

    for index, line in enumerate(lines):
        lineno = index + 1
        code = line.split("#")[0]
        if not code.strip():
            continue

        if PRINT_PATTERN.search(code):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

        if not LOGGER_CALL_PATTERN.search(code):
            continue

        call = _call_text(lines, index)
        if any(rp in call for rp in REDACTION_PATTERNS):
            continue
        lowered = call.lower()
        for keyword in SENSITIVE_KEYWORDS:
            if keyword in lowered:
                errors.append(
                    f"{filepath}:{lineno}: logger call with '{keyword}' "
                    "must use redaction (safe_log_context/redact_string)"
                )

    return errors


def main() -> int:
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))

    if all_errors:
        sys.stderr.write("PII gate FAILED:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
