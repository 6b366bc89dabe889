"""Tests for the personal-data gate script."""

import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from scripts.gate_security_pii import check_file  # noqa: E402

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


def _write(tmp_path, body: str) -> Path:
    path = tmp_path / "module.py"
    path.write_text(body, encoding="utf-8")
    return path


def test_print_flagged(tmp_path):
    errors = check_file(_write(tmp_path, 'print("hello")\n'))
    assert len(errors) == 1
    assert "print()" in errors[0]


def test_multiline_logger_call_with_email_flagged(tmp_path):
    body = (
        "logger.info(\n"
        '    "guest signed in",\n'
        '    extra={"extra_fields": {"email": email}},\n'
        ")\n"
    )
    errors = check_file(_write(tmp_path, body))
    assert any("'email'" in e for e in errors)


def test_redacted_logger_call_allowed(tmp_path):
    body = 'logger.error("failed", extra={"extra_fields": safe_log_context(observations=obs)})\n'
    assert check_file(_write(tmp_path, body)) == []


def test_comments_ignored(tmp_path):
    assert check_file(_write(tmp_path, "# print(national_id)\n")) == []


def test_source_tree_is_clean():
    errors = []
    for pyfile in SRC_DIR.rglob("*.py"):
        errors.extend(check_file(pyfile))
    assert errors == []
