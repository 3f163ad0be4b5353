"""
Model package.

IMPORTANT (Alembic / SQLModel):
- Alembic autogenerate relies on `SQLModel.metadata`, which is populated only
  when the table models are imported.
- `app/alembic/env.py` imports `app.models`, so this module must import all
  SQLModel `table=True` models to register them.
"""

# Import table models so SQLModel registers them in metadata.
from app.member.models import Survey, User, UserProfile  # noqa: F401
from app.store.models import Store  # noqa: F401
from app.visit.models import Visit  # noqa: F401
