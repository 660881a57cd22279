"""
auth/store.py -- SQLAlchemy Core persistence layer for principals.

Pattern: Repository + Data Mapper.
PrincipalStore is the repository; _row_to_principal is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(identifier) is enforced in SQL. The service layer checks for an
  existing identifier before inserting, but two concurrent signups can both
  pass that check; the constraint is what guarantees a single record.
  create_principal() lets IntegrityError propagate so the caller can report
  the conflict.

DB path: auth/smartticket_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import Principal, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_principals = Table(
    "principals",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identifier", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("name", String(255)),
    Column("role", String(30)),  # NULL until assigned
    Column("skills", Text, nullable=False, server_default="[]"),  # JSON list
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a signup write.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PrincipalStore:
    """Repository for Principal records.

    Usage:
        store = PrincipalStore("sqlite:///:memory:")
        pid = store.create_principal(Principal(identifier="a@x.com", hashed_password=hash_password("p1")))
        principal = store.get_by_identifier("a@x.com")
        store.close()
    """

    # Fields the profile-update path may change. Identifier and hash are fixed.
    _UPDATABLE_FIELDS: frozenset = frozenset({"name", "role", "skills"})

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_principal(self, principal: Principal) -> int:
        """Insert a new principal and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the identifier already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _principals.insert().values(
                    identifier=principal.identifier,
                    hashed_password=principal.hashed_password,
                    name=principal.name,
                    role=principal.role.value if principal.role else None,
                    skills=json.dumps(principal.skills),
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_identifier(self, identifier: str) -> Principal | None:
        """Look up a principal by exact identifier (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_principals.select().where(_principals.c.identifier == identifier)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def get_by_id(self, principal_id: int) -> Principal | None:
        """Look up a principal by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_principals.select().where(_principals.c.id == principal_id)).fetchone()
        return _row_to_principal(row) if row is not None else None

    def list_principals(self) -> list[Principal]:
        """Return all principals ordered by identifier."""
        with self.engine.connect() as conn:
            rows = conn.execute(_principals.select().order_by(_principals.c.identifier)).fetchall()
        return [_row_to_principal(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_principals)).scalar()
        return result or 0

    def update_principal(self, principal_id: int, **fields) -> bool:
        """Update mutable fields on an existing principal.

        Accepted fields: name, role (Role or None), skills (list of str).
        Unknown fields raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if principal_id was not found.
        """
        unknown = set(fields) - self._UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown principal fields: {sorted(unknown)!r}")
        if "role" in fields and isinstance(fields["role"], Role):
            fields["role"] = fields["role"].value
        if "skills" in fields:
            fields["skills"] = json.dumps(fields["skills"])
        with self.engine.connect() as conn:
            result = conn.execute(_principals.update().where(_principals.c.id == principal_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Cheap connectivity check for the health endpoint."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_principal(row) -> Principal:
    return Principal(
        id=row.id,
        identifier=row.identifier,
        hashed_password=row.hashed_password,
        name=row.name,
        role=Role(row.role) if row.role else None,
        skills=json.loads(row.skills or "[]"),
        created_at=row.created_at,
    )
