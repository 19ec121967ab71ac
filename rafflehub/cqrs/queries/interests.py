from __future__ import annotations

import uuid

from rafflehub.db.connection import fetch_all, rows_as_dicts

INTERESTED_IDENTITIES_SQL = """
    SELECT DISTINCT session_id
    FROM raffle_interests
    WHERE announcement_id = %s
    ORDER BY session_id
"""


def list_interested_identities(announcement_id: uuid.UUID, conn=None) -> list[str]:
    if conn is None:
        rows = fetch_all(INTERESTED_IDENTITIES_SQL, (announcement_id,))
    else:
        cur = conn.cursor()
        cur.execute(INTERESTED_IDENTITIES_SQL, (announcement_id,))
        rows = rows_as_dicts(cur)
        cur.close()
    return [row["session_id"] for row in rows]


def list_interests(session_id: str) -> list[str]:
    rows = fetch_all(
        """
        SELECT announcement_id
        FROM raffle_interests
        WHERE session_id = %s
        ORDER BY created_at DESC
        """,
        (session_id,),
    )
    return [str(row["announcement_id"]) for row in rows]
