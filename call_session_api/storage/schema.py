"""PostgreSQL schema definitions for the call session service.

Every statement is idempotent; the whole script runs on each startup.
"""

# gen_random_uuid() for column defaults
CREATE_EXTENSIONS = """
CREATE EXTENSION IF NOT EXISTS "pgcrypto";
"""

CREATE_ENUM_TYPES = """
DO $$ BEGIN
    CREATE TYPE session_status AS ENUM ('ongoing', 'completed', 'failed');
EXCEPTION
    WHEN duplicate_object THEN null;
END $$;

DO $$ BEGIN
    CREATE TYPE user_role AS ENUM ('user', 'admin');
EXCEPTION
    WHEN duplicate_object THEN null;
END $$;
"""

# Helper function for auto-updating timestamps
CREATE_UPDATED_AT_TRIGGER = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

# Users table - registered accounts with bcrypt password hashes
CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email TEXT UNIQUE NOT NULL,
    password TEXT NOT NULL,
    role user_role NOT NULL DEFAULT 'user',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);

DROP TRIGGER IF EXISTS update_users_updated_at ON users;
CREATE TRIGGER update_users_updated_at
    BEFORE UPDATE ON users
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""

# Sessions table - one row per call, terminal transition happens once
CREATE_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    started_at TIMESTAMPTZ NOT NULL,
    ended_at TIMESTAMPTZ,
    caller_id TEXT NOT NULL,
    callee_id TEXT NOT NULL,
    status session_status NOT NULL DEFAULT 'ongoing',
    initial_metadata JSONB,
    disposition TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),

    CONSTRAINT valid_session_times CHECK (ended_at IS NULL OR ended_at >= started_at),
    CONSTRAINT valid_session_end_state CHECK (
        (status = 'ongoing' AND ended_at IS NULL)
        OR (status <> 'ongoing' AND ended_at IS NOT NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_sessions_caller_id ON sessions(caller_id);
CREATE INDEX IF NOT EXISTS idx_sessions_callee_id ON sessions(callee_id);
CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status);
CREATE INDEX IF NOT EXISTS idx_sessions_started_at ON sessions(started_at);
CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions(created_at);
CREATE INDEX IF NOT EXISTS idx_sessions_initial_metadata ON sessions USING GIN(initial_metadata);

DROP TRIGGER IF EXISTS update_sessions_updated_at ON sessions;
CREATE TRIGGER update_sessions_updated_at
    BEFORE UPDATE ON sessions
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""

# Session events table - append-only, owned by (and cascade-deleted with) a session.
# valid_event_time is evaluated against the server clock at write time.
CREATE_SESSION_EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS session_events (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    session_id UUID NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    event_type TEXT NOT NULL,
    event_time TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    metadata JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),

    CONSTRAINT valid_event_time CHECK (event_time >= CURRENT_TIMESTAMP - INTERVAL '1 year')
);

CREATE INDEX IF NOT EXISTS idx_session_events_session_id ON session_events(session_id);
CREATE INDEX IF NOT EXISTS idx_session_events_event_time ON session_events(event_time);
CREATE INDEX IF NOT EXISTS idx_session_events_event_type ON session_events(event_type);
CREATE INDEX IF NOT EXISTS idx_session_events_metadata ON session_events USING GIN(metadata);
"""

# Constraint names the storage layer translates into domain errors
SESSION_TIMES_CONSTRAINT = "valid_session_times"
EVENT_TIME_CONSTRAINT = "valid_event_time"
USERS_EMAIL_UNIQUE_CONSTRAINT = "users_email_key"

# Complete schema initialization - executes in order
INIT_SCHEMA = f"""
{CREATE_EXTENSIONS}
{CREATE_ENUM_TYPES}

-- Create helper functions
{CREATE_UPDATED_AT_TRIGGER}

-- Create tables in dependency order
{CREATE_USERS_TABLE}
{CREATE_SESSIONS_TABLE}
{CREATE_SESSION_EVENTS_TABLE}
"""
