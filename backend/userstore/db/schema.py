# Key-value store schema
# A single table backs every logical key (user table, indexes, session, backups)

KV_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,                    -- Logical key (e.g. gearupsports_users_db_v2)
    value TEXT NOT NULL,                     -- JSON payload
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""
