"""SQL-backed store for tracking records.

Records are created once at issuance and afterwards only grow by appended
open rows. Nothing here deletes data; retention is handled outside the
service.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from email_open_tracker.exceptions import PersistenceError, RecordNotFoundError
from email_open_tracker.models import OpenEvent, TrackingRecord

logger = structlog.get_logger()


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tracked_email (
        tracking_id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        recipient TEXT NOT NULL DEFAULT '',
        subject TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_tracked_email_owner ON tracked_email (owner_id, created_at)",
    """
    CREATE TABLE IF NOT EXISTS email_open (
        id {open_id_column},
        tracking_id TEXT NOT NULL REFERENCES tracked_email (tracking_id),
        opened_at TIMESTAMP NOT NULL,
        source_address TEXT NOT NULL,
        client_agent TEXT NOT NULL,
        referer TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_email_open_tracking ON email_open (tracking_id, id)",
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value) -> datetime:
    # SQLite hands timestamps back as naive datetimes or ISO strings.
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def ensure_schema(engine: Engine) -> None:
    """Ensure the tracking tables exist (idempotent).

    Args:
        engine: SQLAlchemy engine bound to the tracking database.
    """

    open_id_column = (
        "BIGSERIAL PRIMARY KEY"
        if engine.dialect.name == "postgresql"
        else "INTEGER PRIMARY KEY AUTOINCREMENT"
    )
    with engine.begin() as conn:
        for ddl in _SCHEMA:
            conn.execute(text(ddl.replace("{open_id_column}", open_id_column)))


class TrackingRepository:
    """Repository for issuing tracking records and appending opens."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> TrackingRepository:
        """Create a repository for a database URL and ensure its schema."""

        engine = create_engine(database_url)
        ensure_schema(engine)
        logger.info("tracking_schema_ready", database=engine.url.render_as_string(hide_password=True))
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_record(self, *, owner_id: str, recipient: str = "", subject: str = "") -> TrackingRecord:
        """Mint a tracking id and persist an empty record for it.

        Raises:
            PersistenceError: If the record could not be written.
        """

        record = TrackingRecord(
            tracking_id=str(uuid.uuid4()),
            owner_id=owner_id,
            recipient=recipient or "",
            subject=subject or "",
            created_at=_now_utc(),
        )
        query = text(
            """
            INSERT INTO tracked_email (tracking_id, owner_id, recipient, subject, created_at)
            VALUES (:tracking_id, :owner_id, :recipient, :subject, :created_at)
            """
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    query,
                    {
                        "tracking_id": record.tracking_id,
                        "owner_id": record.owner_id,
                        "recipient": record.recipient,
                        "subject": record.subject,
                        "created_at": record.created_at.isoformat(),
                    },
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store tracking record: {e}") from e
        return record

    def append_open(
        self,
        tracking_id: str,
        *,
        source_address: str,
        client_agent: str,
        referer: str = "direct",
    ) -> bool:
        """Append one open event to a record.

        Returns:
            True if the record exists and the open was stored, False on a lookup miss.

        Raises:
            PersistenceError: If the database could not be reached.
        """

        insert = text(
            """
            INSERT INTO email_open (tracking_id, opened_at, source_address, client_agent, referer)
            SELECT tracking_id, :opened_at, :source_address, :client_agent, :referer
            FROM tracked_email
            WHERE tracking_id = :tracking_id
            """
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    insert,
                    {
                        "tracking_id": tracking_id,
                        "opened_at": _now_utc().isoformat(),
                        "source_address": source_address,
                        "client_agent": client_agent,
                        "referer": referer,
                    },
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to record open for {tracking_id}: {e}") from e
        return result.rowcount > 0

    def get_record(self, tracking_id: str) -> TrackingRecord | None:
        try:
            with self._engine.begin() as conn:
                row = conn.execute(
                    text(
                        """
                        SELECT tracking_id, owner_id, recipient, subject, created_at
                        FROM tracked_email
                        WHERE tracking_id = :tracking_id
                        """
                    ),
                    {"tracking_id": tracking_id},
                ).mappings().fetchone()
                if row is None:
                    return None
                opens = self._load_opens(conn, [tracking_id])
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load record {tracking_id}: {e}") from e
        return self._to_record(row, opens.get(tracking_id, []))

    def require_record(self, tracking_id: str) -> TrackingRecord:
        """Load a record, raising RecordNotFoundError when the id is unknown."""
        record = self.get_record(tracking_id)
        if record is None:
            raise RecordNotFoundError(f"Unknown tracking id: {tracking_id}")
        return record

    def list_records_for_owner(self, owner_id: str, *, limit: int | None = None) -> list[TrackingRecord]:
        """Return an owner's records, newest first."""

        sql = """
            SELECT tracking_id, owner_id, recipient, subject, created_at
            FROM tracked_email
            WHERE owner_id = :owner_id
            ORDER BY created_at DESC
        """
        params: dict[str, object] = {"owner_id": owner_id}
        if limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = int(limit)

        try:
            with self._engine.begin() as conn:
                rows = conn.execute(text(sql), params).mappings().fetchall()
                opens = self._load_opens(conn, [r["tracking_id"] for r in rows])
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list records for {owner_id}: {e}") from e

        return [self._to_record(r, opens.get(r["tracking_id"], [])) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""

        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    @staticmethod
    def _load_opens(conn, tracking_ids: list[str]) -> dict[str, list[OpenEvent]]:
        if not tracking_ids:
            return {}

        placeholders = ", ".join(f":id{i}" for i in range(len(tracking_ids)))
        params = {f"id{i}": tid for i, tid in enumerate(tracking_ids)}
        rows = conn.execute(
            text(
                f"""
                SELECT tracking_id, opened_at, source_address, client_agent, referer
                FROM email_open
                WHERE tracking_id IN ({placeholders})
                ORDER BY id ASC
                """
            ),
            params,
        ).mappings()

        out: dict[str, list[OpenEvent]] = {}
        for r in rows:
            out.setdefault(r["tracking_id"], []).append(
                OpenEvent(
                    timestamp=_as_utc(r["opened_at"]),
                    source_address=r["source_address"],
                    client_agent=r["client_agent"],
                    referer=r["referer"],
                )
            )
        return out

    @staticmethod
    def _to_record(row, opens: list[OpenEvent]) -> TrackingRecord:
        return TrackingRecord(
            tracking_id=row["tracking_id"],
            owner_id=row["owner_id"],
            recipient=row["recipient"],
            subject=row["subject"],
            created_at=_as_utc(row["created_at"]),
            opens=opens,
        )
