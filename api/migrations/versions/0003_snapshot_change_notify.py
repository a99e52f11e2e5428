"""Notify listeners on snapshots_gbp changes

Revision ID: c93f1a6d2e70
Revises: b27d9e0c4f58
Create Date: 2026-09-15 09:05:00.000000

Every INSERT, UPDATE or DELETE on snapshots_gbp sends a small JSON payload
on the table_changes channel. Listeners only use it as a signal to re-fetch.
"""

from typing import Sequence, Union

from alembic import op

revision: str = "c93f1a6d2e70"
down_revision: Union[str, None] = "b27d9e0c4f58"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION notify_table_change() RETURNS trigger AS $$
        DECLARE
            rec record;
        BEGIN
            IF TG_OP = 'DELETE' THEN
                rec := OLD;
            ELSE
                rec := NEW;
            END IF;
            PERFORM pg_notify(
                'table_changes',
                json_build_object(
                    'table', TG_TABLE_NAME,
                    'op', TG_OP,
                    'business_place_id', rec.business_place_id
                )::text
            );
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        """
        CREATE TRIGGER snapshots_gbp_notify
        AFTER INSERT OR UPDATE OR DELETE ON snapshots_gbp
        FOR EACH ROW EXECUTE FUNCTION notify_table_change()
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS snapshots_gbp_notify ON snapshots_gbp")
    op.execute("DROP FUNCTION IF EXISTS notify_table_change()")
