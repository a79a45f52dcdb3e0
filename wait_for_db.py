#!/usr/bin/env python3
"""Block until the Postgres behind DATABASE_URL accepts connections (DB_WAIT_TIMEOUT seconds, default 60)."""
import os
import sys
import time

import psycopg2
from sqlalchemy.engine import make_url


def connect_kwargs(database_url: str) -> dict:
    u = make_url(database_url)
    return {
        "host": u.host or "db",
        "port": u.port or 5432,
        "user": u.username or "safariplus",
        "password": u.password or "safariplus",
        "dbname": u.database or "safariplus",
    }


def wait(database_url: str, timeout_s: int) -> None:
    kw = connect_kwargs(database_url)
    print(f"[wait_for_db] {kw['host']}:{kw['port']} db={kw['dbname']} (timeout={timeout_s}s)")
    deadline = time.monotonic() + timeout_s
    while True:
        try:
            psycopg2.connect(connect_timeout=3, **kw).close()
        except psycopg2.OperationalError as e:
            if time.monotonic() > deadline:
                print(f"[wait_for_db] gave up: {e}")
                raise
            time.sleep(1)
        else:
            print("[wait_for_db] ready")
            return


database_url = os.getenv("DATABASE_URL")
if not database_url:
    sys.exit("DATABASE_URL is not set")
wait(database_url, int(os.getenv("DB_WAIT_TIMEOUT", "60")))
