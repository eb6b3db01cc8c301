"""add status column to tasks"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "202510150900"
down_revision = "202510010900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "tasks",
        sa.Column("status", sa.String(length=20), nullable=False, server_default="todo"),
    )
    op.execute(sa.text("UPDATE tasks SET status = 'completed' WHERE is_completed"))


def downgrade() -> None:
    with op.batch_alter_table("tasks") as batch_op:
        batch_op.drop_column("status")
