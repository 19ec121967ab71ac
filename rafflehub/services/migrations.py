from __future__ import annotations

from datetime import datetime, timezone
import logging

from rafflehub.db.connection import get_conn
from rafflehub.db.schema import ensure_schema

logger = logging.getLogger(__name__)


def run_migrations() -> dict:
    conn = get_conn()
    ensure_schema(conn)
    logger.info("Database schema is up to date")
    return {"status": "ok", "applied_at": datetime.now(timezone.utc)}
