"""shop baseline

Marks the schema created by init_db() (SQLModel.metadata.create_all) as the
starting point. Later schema changes get their own revisions.

"""
from typing import Sequence, Union

from alembic import op  # noqa: F401
import sqlmodel  # noqa: F401


revision: str = "0001_shop_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tables already exist: init_db() creates them on application startup.
    pass


def downgrade() -> None:
    # No-op; the baseline never drops tables.
    pass
