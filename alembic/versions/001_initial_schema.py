"""Initial schema - users, leads, block list, phone verifications, task queue.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users (lead owners)
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255)),
        sa.Column("email", sa.String(255), unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Leads
    op.create_table(
        "leads",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger),
        sa.Column("project_id", sa.BigInteger),
        sa.Column("quiz_id", sa.BigInteger),
        sa.Column("external_id", sa.String(150), unique=True),
        sa.Column("external_system", sa.String(255), nullable=False),
        sa.Column("external_entity", sa.String(255), nullable=False),
        sa.Column("external_entity_id", sa.String(255), nullable=False),
        sa.Column("external_project_id", sa.String(255)),
        sa.Column("name", sa.String(150)),
        sa.Column("email", sa.String(150)),
        sa.Column("phone", sa.String(150)),
        sa.Column("messengers", postgresql.JSONB),
        sa.Column("contacts", postgresql.JSONB),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("city", sa.String(100)),
        sa.Column("country", sa.String(100)),
        sa.Column("utm_source", sa.String(255)),
        sa.Column("utm_medium", sa.String(255)),
        sa.Column("utm_campaign", sa.String(255)),
        sa.Column("utm_content", sa.String(255)),
        sa.Column("utm_term", sa.String(255)),
        sa.Column("data", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.Integer, nullable=False, server_default="1"),
        sa.Column("integration_status", sa.String(255)),
        sa.Column("integration_data", postgresql.JSONB),
        sa.Column("is_test", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("viewed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("paid", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("blocked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("fingerprint", sa.String(255)),
        sa.Column("equal_answer_id", sa.BigInteger),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_leads_user_created", "leads", ["user_id", "created_at"])
    op.create_index("ix_leads_project_created", "leads", ["project_id", "created_at"])
    op.create_index("ix_leads_quiz_created", "leads", ["quiz_id", "created_at"])
    op.create_index("ix_leads_status_created", "leads", ["status", "created_at"])
    op.create_index("ix_leads_fingerprint_created", "leads", ["fingerprint", "created_at"])
    op.create_index("ix_leads_phone", "leads", ["phone"])
    op.create_index("ix_leads_ip_address", "leads", ["ip_address"])
    op.create_index("ix_leads_external_entity_id", "leads", ["external_entity_id"])
    op.create_index("ix_leads_deleted_at", "leads", ["deleted_at"])

    # Block list
    op.create_table(
        "blocklist",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger),
        sa.Column("quiz_id", sa.BigInteger),
        sa.Column("lead_id", sa.BigInteger),
        sa.Column("fingerprint", sa.String(255)),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("email", sa.String(150)),
        sa.Column("phone", sa.String(150)),
        sa.Column("type", sa.String(20), nullable=False, server_default="blacklist"),
        sa.Column("reason", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_blocklist_user_type", "blocklist", ["user_id", "type"])
    op.create_index("ix_blocklist_quiz_type", "blocklist", ["quiz_id", "type"])
    op.create_index("ix_blocklist_fingerprint", "blocklist", ["fingerprint"])
    op.create_index("ix_blocklist_ip_address", "blocklist", ["ip_address"])
    op.create_index("ix_blocklist_email", "blocklist", ["email"])
    op.create_index("ix_blocklist_phone", "blocklist", ["phone"])
    op.create_index("ix_blocklist_lead_id", "blocklist", ["lead_id"])

    # Phone verifications
    op.create_table(
        "phone_verifications",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("lead_id", sa.BigInteger),
        sa.Column("phone", sa.String(150), nullable=False),
        sa.Column("code", sa.String(10)),
        sa.Column("status", sa.String(10), nullable=False, server_default="pending"),
        sa.Column("verified_at", sa.DateTime(timezone=True)),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("attempts", sa.Integer, server_default="0"),
        sa.Column("provider_response", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_phone_verifications_lead_id", "phone_verifications", ["lead_id"])
    op.create_index("ix_phone_verifications_phone", "phone_verifications", ["phone"])
    op.create_index("ix_phone_verifications_status", "phone_verifications", ["status"])
    op.create_index("ix_phone_verifications_created_at", "phone_verifications", ["created_at"])

    # Task queue (integration dispatch)
    op.create_table(
        "task_queue",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("task_type", sa.String(50), nullable=False),
        sa.Column("payload", postgresql.JSONB),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer, server_default="5"),
        sa.Column("retry_count", sa.Integer, server_default="0"),
        sa.Column("max_retries", sa.Integer, server_default="3"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("error_message", sa.Text),
        sa.Column("result_data", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_task_queue_processing", "task_queue", ["status", "scheduled_at", "priority"])


def downgrade() -> None:
    op.drop_table("task_queue")
    op.drop_table("phone_verifications")
    op.drop_table("blocklist")
    op.drop_table("leads")
    op.drop_table("users")
