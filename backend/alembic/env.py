# backend/alembic/env.py
import sys
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from examprep.config import Settings  # noqa: E402  (loads backend/.env)
from examprep.services.db import Base, build_url  # noqa: E402
import examprep.models.attempt  # noqa: E402,F401
import examprep.models.mock_test  # noqa: E402,F401

# rendered with the password; never handed to set_main_option (% interpolation)
DB_URL = build_url(Settings()).render_as_string(hide_password=False)

COMPARE = {"compare_type": True, "compare_server_default": True}


def run_offline() -> None:
    context.configure(url=DB_URL, target_metadata=Base.metadata, literal_binds=True, **COMPARE)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(DB_URL, poolclass=pool.NullPool)
    with engine.connect() as conn:
        context.configure(connection=conn, target_metadata=Base.metadata, **COMPARE)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
