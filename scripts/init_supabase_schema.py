#!/usr/bin/env python3
"""
Initialize the Supabase database schema with a direct PostgreSQL connection

Creates the users and tickets tables, the per-year ticket counter and the
next_ticket_number(p_year) function used by TicketRepository.
"""
import os
import sys

import psycopg2
from dotenv import load_dotenv

load_dotenv()

DDL_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'moderator', 'admin')),
    skills TEXT[] NOT NULL DEFAULT '{}',
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS tickets (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    ticket_number TEXT NOT NULL UNIQUE,
    subject VARCHAR(200) NOT NULL,
    description VARCHAR(5000) NOT NULL,
    category TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high')),
    status TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'in-progress', 'resolved', 'closed')),
    user_id UUID NOT NULL REFERENCES users(id),
    ai_category TEXT,
    ai_priority TEXT,
    ai_summary VARCHAR(1000),
    tags TEXT[] NOT NULL DEFAULT '{}',
    assigned_to UUID REFERENCES users(id),
    assigned_at TIMESTAMPTZ,
    assigned_by TEXT,
    comments JSONB NOT NULL DEFAULT '[]',
    resolved_at TIMESTAMPTZ,
    closed_at TIMESTAMPTZ,
    response_time INTEGER,
    resolution_time INTEGER,
    satisfaction JSONB,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS ticket_counters (
    year INTEGER PRIMARY KEY,
    last_seq INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tickets_user_id ON tickets(user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_tickets_assigned_status ON tickets(assigned_to, status);
CREATE INDEX IF NOT EXISTS idx_tickets_status_priority ON tickets(status, priority, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_users_role_active ON users(role, is_active);
"""

FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION next_ticket_number(p_year INTEGER)
RETURNS INTEGER
LANGUAGE sql
AS $$
    INSERT INTO ticket_counters (year, last_seq)
    VALUES (p_year, 1)
    ON CONFLICT (year) DO UPDATE SET last_seq = ticket_counters.last_seq + 1
    RETURNING last_seq;
$$;
"""

TABLES = ("users", "tickets", "ticket_counters")


def get_connection():
    """Get PostgreSQL connection using .env variables"""
    host = os.getenv("SUPABASE_DB_HOST")
    port = int(os.getenv("SUPABASE_DB_PORT", "6543"))
    database = os.getenv("SUPABASE_DB_NAME", "postgres")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")

    print(f"🔗 Connecting to: {host}:{port}")
    print(f"   Database: {database}")
    print(f"   User: {user}")

    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password
    )


def create_schema() -> bool:
    """Create tables, indexes and the numbering function"""
    conn = None
    try:
        conn = get_connection()
        cur = conn.cursor()

        print("🔧 Creating database schema...")
        cur.execute(DDL_SQL)
        conn.commit()
        print("✅ DDL executed successfully")

        print("🔢 Creating next_ticket_number function...")
        cur.execute(FUNCTION_SQL)
        conn.commit()
        print("✅ Function created")

        cur.execute("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_name = ANY(%s)
            ORDER BY table_name
        """, (list(TABLES),))

        print("\n📊 Created tables:")
        for (table_name,) in cur.fetchall():
            print(f"  - {table_name}")

        cur.close()
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        if conn:
            conn.rollback()
        return False
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    sys.exit(0 if create_schema() else 1)
