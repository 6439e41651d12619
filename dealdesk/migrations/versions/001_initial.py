"""Initial DealDesk schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _fk(table: str) -> sa.ForeignKey:
    return sa.ForeignKey(f"{table}.id", ondelete="SET NULL")


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "contact",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("company", sa.String(200)),
        sa.Column("position", sa.String(200)),
        sa.Column("address", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("state", sa.String(50)),
        sa.Column("zip_code", sa.String(20)),
        sa.Column("country", sa.String(50)),
        sa.Column("notes", sa.Text),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("owner_id", sa.Uuid(), _fk("user")),
        *_timestamps(),
    )
    op.create_index("ix_contact_email", "contact", ["email"], unique=True)
    op.create_index("ix_contact_owner_id", "contact", ["owner_id"])

    op.create_table(
        "lead",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("company", sa.String(200)),
        sa.Column("position", sa.String(200)),
        sa.Column("source", sa.String(32)),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("value", sa.Numeric(14, 2)),
        sa.Column("notes", sa.Text),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("owner_id", sa.Uuid(), _fk("user")),
        sa.Column("contact_id", sa.Uuid(), _fk("contact")),
        *_timestamps(),
    )
    op.create_index("ix_lead_email", "lead", ["email"])
    op.create_index("ix_lead_status", "lead", ["status"])
    op.create_index("ix_lead_owner_id", "lead", ["owner_id"])
    op.create_index("ix_lead_contact_id", "lead", ["contact_id"])

    op.create_table(
        "deal",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("value", sa.Numeric(14, 2), nullable=False),
        sa.Column("stage", sa.String(32), nullable=False),
        sa.Column("probability", sa.Integer, nullable=False),
        sa.Column("expected_close_date", sa.Date),
        sa.Column("actual_close_date", sa.Date),
        sa.Column("source", sa.String(100)),
        sa.Column("notes", sa.Text),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("owner_id", sa.Uuid(), _fk("user")),
        sa.Column("contact_id", sa.Uuid(), _fk("contact")),
        sa.Column("lead_id", sa.Uuid(), _fk("lead"), unique=True),
        *_timestamps(),
    )
    op.create_index("ix_deal_stage", "deal", ["stage"])
    op.create_index("ix_deal_owner_id", "deal", ["owner_id"])
    op.create_index("ix_deal_contact_id", "deal", ["contact_id"])

    op.create_table(
        "activity",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("priority", sa.String(32), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column("is_completed", sa.Boolean, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("assignee_id", sa.Uuid(), _fk("user")),
        sa.Column("created_by_id", sa.Uuid(), _fk("user")),
        sa.Column("contact_id", sa.Uuid(), _fk("contact")),
        sa.Column("deal_id", sa.Uuid(), _fk("deal")),
        sa.Column("lead_id", sa.Uuid(), _fk("lead")),
        *_timestamps(),
    )
    for column in ("type", "assignee_id", "created_by_id", "contact_id", "deal_id", "lead_id"):
        op.create_index(f"ix_activity_{column}", "activity", [column])


def downgrade() -> None:
    op.drop_table("activity")
    op.drop_table("deal")
    op.drop_table("lead")
    op.drop_table("contact")
    op.drop_table("user")
