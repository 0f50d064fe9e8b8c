"""users, trials, reminders"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# === Alembic metadata ===
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

trial_status = sa.Enum("ACTIVE", "CANCELED", name="trial_status")
reminder_status = sa.Enum("PENDING", "SENDING", "SENT", "FAILED", "SKIPPED", name="reminder_status")
reminder_type = sa.Enum(
    "THREE_DAYS", "TWO_DAYS", "ONE_DAY", "TWENTY_FOUR_HOURS", "SIX_HOURS", "THREE_HOURS", "ONE_HOUR",
    name="reminder_type",
)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "trials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("service_name", sa.String(length=255), nullable=False),
        sa.Column("service_url", sa.String(length=2048), nullable=False),
        sa.Column("cancel_url", sa.String(length=2048), nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("renewal_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", trial_status, nullable=False),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_trials"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_trials_user_id_users"),
    )
    op.create_index("ix_trials_user_id", "trials", ["user_id"])
    op.create_index("ix_trials_status", "trials", ["status"])

    op.create_table(
        "reminders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("trial_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("remind_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", reminder_type, nullable=False),
        sa.Column("status", reminder_status, nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("provider", sa.String(length=32), nullable=True),
        sa.Column("provider_message_id", sa.String(length=255), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_reminders"),
        sa.ForeignKeyConstraint(["trial_id"], ["trials.id"], name="fk_reminders_trial_id_trials"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_reminders_user_id_users"),
    )
    op.create_index("ix_reminders_trial_id", "reminders", ["trial_id"])
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])
    op.create_index("ix_reminders_remind_at", "reminders", ["remind_at"])
    op.create_index("ix_reminders_status", "reminders", ["status"])
    # due-sweep lookup
    op.create_index("ix_reminders_status_remind_at", "reminders", ["status", "remind_at"])


def downgrade():
    op.drop_table("reminders")
    op.drop_table("trials")
    op.drop_table("users")
    bind = op.get_bind()
    reminder_type.drop(bind, checkfirst=True)
    reminder_status.drop(bind, checkfirst=True)
    trial_status.drop(bind, checkfirst=True)
