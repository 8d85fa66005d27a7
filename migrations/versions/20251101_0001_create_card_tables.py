"""Create card and interaction tables for the review scheduler."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20251101_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "cards",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("state", sa.String(length=16), server_default=sa.text("'new'"), nullable=False),
        sa.Column("stability", sa.Float(), nullable=True),
        sa.Column("difficulty", sa.Float(), nullable=True),
        sa.Column("reps", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("lapses", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_days", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempt_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("correct_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_attempted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_cards_owner_id", "cards", ("owner_id",))
    op.create_index("ix_cards_owner_id_next_review_at", "cards", ("owner_id", "next_review_at"))

    op.create_table(
        "interactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("card_id", sa.String(length=64), nullable=False),
        sa.Column("user_answer", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column(
            "attempted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("time_spent_ms", sa.Integer(), nullable=True),
        sa.Column("session_id", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(
            ("card_id",),
            ("cards.id",),
            name="fk_interactions_card_id_cards",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_interactions_owner_id_card_id",
        "interactions",
        ("owner_id", "card_id"),
    )


def downgrade() -> None:
    op.drop_index("ix_interactions_owner_id_card_id", table_name="interactions")
    op.drop_table("interactions")
    op.drop_index("ix_cards_owner_id_next_review_at", table_name="cards")
    op.drop_index("ix_cards_owner_id", table_name="cards")
    op.drop_table("cards")
