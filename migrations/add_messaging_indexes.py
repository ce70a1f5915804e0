"""
Add inbox indexes to the messaging tables

Migration to add:
- messages (thread_id, created_at) for the latest-message lookup
- messages (thread_id, is_read) for unread counts
- threads (is_archived, last_message_at) for the inbox sort
- thread_participants (profile_id, thread_id) for client visibility

Run with: python migrations/add_messaging_indexes.py
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from studio_inbox.database import engine

INDEXES = {
    "messages_thread_created_idx": "messages (thread_id, created_at)",
    "messages_thread_unread_idx": "messages (thread_id, is_read)",
    "threads_archived_last_message_idx": "threads (is_archived, last_message_at)",
    "thread_participants_profile_idx": "thread_participants (profile_id, thread_id)",
}


def upgrade():
    """Create inbox indexes; safe to run more than once"""
    with engine.connect() as conn:
        for name, target in INDEXES.items():
            conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON {target}"))
            print(f"✅ Ensured index {name}")
        conn.commit()

    print("\n✅ Migration completed successfully!")


def downgrade():
    """Drop the indexes added by upgrade()"""
    with engine.connect() as conn:
        for name in INDEXES:
            conn.execute(text(f"DROP INDEX IF EXISTS {name}"))
            print(f"✅ Dropped index {name}")
        conn.commit()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage messaging index migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        print("Rolling back migration...")
        downgrade()
    else:
        print("Running migration...")
        upgrade()
