"""Exclusion constraint against double-booking a cabin.

Two bookings for the same cabin_id may not cover a common calendar day.
The range is closed on both ends ('[]'), so a stay ending on the day another
one starts is rejected, same as the availability calendar does.

Revision ID: 002_no_cabin_overlap_constraint
Revises: 001_initial_schema
Create Date: 2026-10-19
"""
from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_no_cabin_overlap_constraint"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_no_cabin_overlap_constraint.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS no_cabin_booking_overlap")
