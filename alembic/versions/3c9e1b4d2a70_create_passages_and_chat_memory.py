"""create passages and chat memory

Revision ID: 3c9e1b4d2a70
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c9e1b4d2a70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "passages",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("breadcrumb", sa.String(length=512), nullable=True),
        sa.Column("problem_id", sa.String(length=16), nullable=True),
        sa.Column("subpart", sa.String(length=4), nullable=True),
        sa.Column("embedding", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_passages_ordinal", "passages", ["ordinal"], unique=False)
    op.create_index("ix_passages_problem_id", "passages", ["problem_id"], unique=False)

    op.create_table(
        "chat_memory",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("thread_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("turn", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("thread_id", "turn", name="uq_chat_memory_thread_turn"),
    )
    op.create_index("ix_chat_memory_thread_id", "chat_memory", ["thread_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_chat_memory_thread_id", table_name="chat_memory")
    op.drop_table("chat_memory")

    op.drop_index("ix_passages_problem_id", table_name="passages")
    op.drop_index("ix_passages_ordinal", table_name="passages")
    op.drop_table("passages")
