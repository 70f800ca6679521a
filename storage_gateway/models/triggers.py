"""
Usage accounting triggers.

``storage_usage`` is kept consistent with ``file_metadata`` by the database:
inserting a completed row adds its size to the tenant's totals and to the
matching category, deleting it subtracts the same amounts. Concurrent
uploads therefore never race on the counters; the gateway only reads them.

The DDL is attached to ``Base.metadata`` so ``create_all`` installs it for
PostgreSQL (production) and SQLite (test suite).
"""

from sqlalchemy import DDL, event

from storage_gateway.core.database import Base

# PostgreSQL

PG_USAGE_FUNCTION = DDL("""
CREATE OR REPLACE FUNCTION apply_file_metadata_usage() RETURNS trigger AS $$
BEGIN
    IF TG_OP = 'INSERT' THEN
        IF NEW.upload_status <> 'completed' THEN
            RETURN NEW;
        END IF;
        INSERT INTO storage_usage
            (admin_id, total_bytes, photos_bytes, reports_bytes, file_count, last_calculated)
        VALUES (
            NEW.admin_id,
            NEW.file_size,
            CASE WHEN NEW.file_type = 'photo' THEN NEW.file_size ELSE 0 END,
            CASE WHEN NEW.file_type = 'report' THEN NEW.file_size ELSE 0 END,
            1,
            now()
        )
        ON CONFLICT (admin_id) DO UPDATE SET
            total_bytes = storage_usage.total_bytes + EXCLUDED.total_bytes,
            photos_bytes = storage_usage.photos_bytes + EXCLUDED.photos_bytes,
            reports_bytes = storage_usage.reports_bytes + EXCLUDED.reports_bytes,
            file_count = storage_usage.file_count + 1,
            last_calculated = now();
        RETURN NEW;
    END IF;

    IF OLD.upload_status <> 'completed' THEN
        RETURN OLD;
    END IF;
    UPDATE storage_usage SET
        total_bytes = GREATEST(total_bytes - OLD.file_size, 0),
        photos_bytes = GREATEST(photos_bytes
            - CASE WHEN OLD.file_type = 'photo' THEN OLD.file_size ELSE 0 END, 0),
        reports_bytes = GREATEST(reports_bytes
            - CASE WHEN OLD.file_type = 'report' THEN OLD.file_size ELSE 0 END, 0),
        file_count = GREATEST(file_count - 1, 0),
        last_calculated = now()
    WHERE admin_id = OLD.admin_id;
    RETURN OLD;
END;
$$ LANGUAGE plpgsql
""")

PG_USAGE_TRIGGER = DDL("""
CREATE OR REPLACE TRIGGER file_metadata_usage
AFTER INSERT OR DELETE ON file_metadata
FOR EACH ROW EXECUTE FUNCTION apply_file_metadata_usage()
""")

PG_DROP_USAGE_FUNCTION = DDL(
    "DROP FUNCTION IF EXISTS apply_file_metadata_usage() CASCADE"
)

# SQLite

SQLITE_INSERT_TRIGGER = DDL("""
CREATE TRIGGER IF NOT EXISTS file_metadata_usage_insert
AFTER INSERT ON file_metadata
WHEN NEW.upload_status = 'completed'
BEGIN
    INSERT OR IGNORE INTO storage_usage
        (admin_id, total_bytes, photos_bytes, reports_bytes, file_count, last_calculated)
    VALUES (NEW.admin_id, 0, 0, 0, 0, CURRENT_TIMESTAMP);
    UPDATE storage_usage SET
        total_bytes = total_bytes + NEW.file_size,
        photos_bytes = photos_bytes
            + CASE WHEN NEW.file_type = 'photo' THEN NEW.file_size ELSE 0 END,
        reports_bytes = reports_bytes
            + CASE WHEN NEW.file_type = 'report' THEN NEW.file_size ELSE 0 END,
        file_count = file_count + 1,
        last_calculated = CURRENT_TIMESTAMP
    WHERE admin_id = NEW.admin_id;
END
""")

SQLITE_DELETE_TRIGGER = DDL("""
CREATE TRIGGER IF NOT EXISTS file_metadata_usage_delete
AFTER DELETE ON file_metadata
WHEN OLD.upload_status = 'completed'
BEGIN
    UPDATE storage_usage SET
        total_bytes = MAX(total_bytes - OLD.file_size, 0),
        photos_bytes = MAX(photos_bytes
            - CASE WHEN OLD.file_type = 'photo' THEN OLD.file_size ELSE 0 END, 0),
        reports_bytes = MAX(reports_bytes
            - CASE WHEN OLD.file_type = 'report' THEN OLD.file_size ELSE 0 END, 0),
        file_count = MAX(file_count - 1, 0),
        last_calculated = CURRENT_TIMESTAMP
    WHERE admin_id = OLD.admin_id;
END
""")


event.listen(Base.metadata, "after_create", PG_USAGE_FUNCTION.execute_if(dialect="postgresql"))
event.listen(Base.metadata, "after_create", PG_USAGE_TRIGGER.execute_if(dialect="postgresql"))
event.listen(Base.metadata, "after_drop", PG_DROP_USAGE_FUNCTION.execute_if(dialect="postgresql"))

event.listen(Base.metadata, "after_create", SQLITE_INSERT_TRIGGER.execute_if(dialect="sqlite"))
event.listen(Base.metadata, "after_create", SQLITE_DELETE_TRIGGER.execute_if(dialect="sqlite"))
