from __future__ import annotations

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS upcoming_raffles (
        id uuid PRIMARY KEY,
        title text NOT NULL,
        description text NOT NULL,
        prize_value numeric(16,6) NOT NULL CHECK (prize_value >= 0),
        ticket_price numeric(16,6) NOT NULL CHECK (ticket_price > 0),
        max_tickets int NOT NULL CHECK (max_tickets > 0),
        starts_at timestamptz NOT NULL,
        category_id text,
        creator_id text NOT NULL,
        is_active boolean NOT NULL DEFAULT true,
        interested_count int NOT NULL DEFAULT 0 CHECK (interested_count >= 0),
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS upcoming_raffles_due_idx ON upcoming_raffles (starts_at) WHERE is_active;",
    """
    CREATE TABLE IF NOT EXISTS raffle_interests (
        session_id text NOT NULL,
        announcement_id uuid NOT NULL REFERENCES upcoming_raffles(id),
        created_at timestamptz NOT NULL DEFAULT now(),
        PRIMARY KEY (session_id, announcement_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS raffle_interests_announcement_idx ON raffle_interests (announcement_id);",
    """
    CREATE TABLE IF NOT EXISTS live_raffles (
        id uuid PRIMARY KEY,
        title text NOT NULL,
        description text NOT NULL,
        prize_value numeric(16,6) NOT NULL CHECK (prize_value >= 0),
        ticket_price numeric(16,6) NOT NULL CHECK (ticket_price > 0),
        max_tickets int NOT NULL CHECK (max_tickets > 0),
        tickets_sold int NOT NULL DEFAULT 0 CHECK (tickets_sold >= 0 AND tickets_sold <= max_tickets),
        ends_at timestamptz NOT NULL,
        category_id text,
        creator_id text NOT NULL,
        is_active boolean NOT NULL DEFAULT true,
        winner_id text,
        approved_by_creator boolean NOT NULL DEFAULT false,
        approved_by_winner boolean NOT NULL DEFAULT false,
        source_announcement_id uuid UNIQUE REFERENCES upcoming_raffles(id),
        created_at timestamptz NOT NULL DEFAULT now(),
        updated_at timestamptz NOT NULL DEFAULT now(),
        CHECK (winner_id IS NOT NULL OR NOT (approved_by_creator OR approved_by_winner))
    );
    """,
    "CREATE INDEX IF NOT EXISTS live_raffles_creator_idx ON live_raffles (creator_id);",
    """
    CREATE TABLE IF NOT EXISTS ticket_purchases (
        id uuid PRIMARY KEY,
        raffle_id uuid NOT NULL REFERENCES live_raffles(id),
        buyer_id text NOT NULL,
        quantity int NOT NULL CHECK (quantity > 0),
        total_amount numeric(16,6) NOT NULL CHECK (total_amount >= 0),
        external_ref text,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS ticket_purchases_raffle_idx ON ticket_purchases (raffle_id);",
    "CREATE INDEX IF NOT EXISTS ticket_purchases_buyer_idx ON ticket_purchases (buyer_id);",
    """
    CREATE TABLE IF NOT EXISTS inbox_messages (
        id uuid PRIMARY KEY,
        recipient_id text NOT NULL,
        subject text NOT NULL,
        body text NOT NULL,
        is_read boolean NOT NULL DEFAULT false,
        created_at timestamptz NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS inbox_messages_recipient_idx ON inbox_messages (recipient_id, created_at DESC);",
)


def ensure_schema(conn) -> None:
    cur = conn.cursor()
    for statement in SCHEMA_STATEMENTS:
        cur.execute(statement)
    conn.commit()
    cur.close()
