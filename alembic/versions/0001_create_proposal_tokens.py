# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later
"""Create proposal_tokens with a unique scope index treating NULL resources as equal.

Revision ID: 0001_proposal_tokens
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001_proposal_tokens"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "proposal_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("proposable_type", sa.String(128), nullable=False),
        sa.Column("resource_type", sa.String(128), nullable=True),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("arguments", sa.JSON(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("context", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_proposal_tokens_email", "proposal_tokens", ["email"], unique=False)
    op.create_index("ix_proposal_tokens_token", "proposal_tokens", ["token"], unique=True)
    op.create_index("ix_proposal_tokens_context", "proposal_tokens", ["context"], unique=False)
    op.create_index(
        "uq_proposal_tokens_scope",
        "proposal_tokens",
        [
            "email",
            "proposable_type",
            sa.text("coalesce(resource_type, '')"),
            sa.text("coalesce(resource_id, '')"),
        ],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_proposal_tokens_scope", table_name="proposal_tokens")
    op.drop_index("ix_proposal_tokens_context", table_name="proposal_tokens")
    op.drop_index("ix_proposal_tokens_token", table_name="proposal_tokens")
    op.drop_index("ix_proposal_tokens_email", table_name="proposal_tokens")
    op.drop_table("proposal_tokens")
