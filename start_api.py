#!/usr/bin/env python3
"""
Wait for Postgres, run migrations, seed demo data, then exec uvicorn.
Migrations and seed use the same DATABASE_URL as the app.
"""
import os
import sys

from app.core.config import settings

# 1) Wait for DB (Postgres only; SQLite needs no server)
if settings.DATABASE_URL.startswith("postgresql"):
    os.environ.setdefault("DATABASE_URL", settings.DATABASE_URL)
    import wait_for_db  # noqa: F401

# 2) Migrations
from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
alembic_cfg.set_main_option("script_location", os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# 3) Seed
from app.seed import run as run_seed
run_seed()

# 4) Start uvicorn (replace current process)
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", os.getenv("PORT", "8000")],
)
