"""SQLite-based record store for escalations, audit entries and templates.

Tables:
- templates: Reusable troubleshooting checklists
- escalations: One row per escalation including publish status
- audit_log: Append-only lifecycle events (deleted by cascade only)
- api_config: Single row with the ticketing account email and Ollama settings
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

import aiosqlite
import pydantic

from handoff_core.errors import NotFoundError, StorageError, ValidationError
from handoff_core.infrastructure.persistence.base import EscalationStore
from handoff_core.infrastructure.persistence.seed_templates import DEFAULT_TEMPLATES
from handoff_core.models import (
    ApiConfig,
    AuditAction,
    AuditEntry,
    ChecklistItem,
    Escalation,
    EscalationInput,
    EscalationStatus,
    EscalationSummary,
    Template,
    parse_utc_timestamp,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_ESCALATION_COLUMNS = (
    "id, ticket_id, template_id, problem_summary, checklist, current_status, next_steps, "
    "llm_summary, llm_confidence, markdown_output, status, posted_at, last_error, "
    "created_at, updated_at"
)


def _load_checklist(raw: Optional[str]) -> List[ChecklistItem]:
    """Decode a stored checklist.

    Malformed JSON loads as an empty list; items of the wrong shape are skipped.
    """
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored checklist is not valid JSON, loading as empty")
        return []
    if not isinstance(items, list):
        return []
    checklist = []
    for item in items:
        try:
            checklist.append(ChecklistItem.model_validate(item))
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping malformed checklist item {item!r}: {e.error_count()} error(s)")
    return checklist


def _dump_checklist(items: Sequence[ChecklistItem]) -> str:
    return json.dumps([item.model_dump() for item in items])


class SQLiteEscalationStore(EscalationStore):
    """SQLite storage for escalations with an append-only audit log.

    A connection is opened per operation with foreign keys enabled, so audit
    entries are removed by cascade when their escalation is deleted.
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        """Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get a database connection with foreign keys enabled."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys=ON")
                yield db
        except aiosqlite.Error as e:
            raise StorageError(f"Database error: {e}") from e

    async def initialize(self, seed: bool = True) -> None:
        """Create the schema and optionally seed the built-in templates."""
        await self._ensure_initialized()
        if seed:
            await self.seed_templates(DEFAULT_TEMPLATES)

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        async with self._init_lock:
            # Another coroutine may have initialized while we waited
            if self._initialized:
                return

            async with self._connect() as db:
                await self._run_migrations(db)
            self._initialized = True

    async def _get_schema_version(self, db: aiosqlite.Connection) -> int:
        try:
            cursor = await db.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = await cursor.fetchone()
            return row[0] if row else 0
        except aiosqlite.OperationalError:
            # Table doesn't exist yet
            return 0

    async def _run_migrations(self, db: aiosqlite.Connection) -> None:
        current_version = await self._get_schema_version(db)

        if current_version < 1:
            await self._migrate_v1(db)
            logger.info(f"Schema migrated from version {current_version} to 1 ({self.db_path})")

    async def _migrate_v1(self, db: aiosqlite.Connection) -> None:
        """Initial schema."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                category TEXT NOT NULL,
                checklist_items TEXT NOT NULL,
                l2_team TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS escalations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticket_id TEXT NOT NULL,
                template_id INTEGER REFERENCES templates(id) ON DELETE SET NULL,
                problem_summary TEXT NOT NULL DEFAULT '',
                checklist TEXT NOT NULL DEFAULT '[]',
                current_status TEXT NOT NULL DEFAULT '',
                next_steps TEXT NOT NULL DEFAULT '',
                llm_summary TEXT,
                llm_confidence TEXT,
                markdown_output TEXT,
                status TEXT NOT NULL DEFAULT 'draft',
                posted_at TEXT,
                last_error TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS audit_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                escalation_id INTEGER NOT NULL REFERENCES escalations(id) ON DELETE CASCADE,
                action TEXT NOT NULL,
                details TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS api_config (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                jira_email TEXT NOT NULL DEFAULT '',
                ollama_endpoint TEXT NOT NULL DEFAULT 'http://localhost:11434',
                ollama_model TEXT NOT NULL DEFAULT 'llama3',
                updated_at TEXT NOT NULL
            )
        """)

        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_escalations_ticket_id ON escalations(ticket_id)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_escalations_created_at ON escalations(created_at DESC)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_audit_log_escalation ON audit_log(escalation_id)"
        )

        await db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (1, utc_timestamp()),
        )

        await db.commit()

    # ============================================================
    # Row mapping
    # ============================================================

    @staticmethod
    def _row_to_escalation(row: aiosqlite.Row) -> Escalation:
        return Escalation(
            id=row["id"],
            ticket_id=row["ticket_id"],
            template_id=row["template_id"],
            problem_summary=row["problem_summary"],
            checklist=_load_checklist(row["checklist"]),
            current_status=row["current_status"],
            next_steps=row["next_steps"],
            llm_summary=row["llm_summary"],
            llm_confidence=row["llm_confidence"],
            markdown_output=row["markdown_output"],
            status=EscalationStatus.parse(row["status"]),
            posted_at=parse_utc_timestamp(row["posted_at"]),
            last_error=row["last_error"],
            created_at=parse_utc_timestamp(row["created_at"]),
            updated_at=parse_utc_timestamp(row["updated_at"]),
        )

    @staticmethod
    def _row_to_template(row: aiosqlite.Row) -> Template:
        return Template(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            category=row["category"],
            checklist_items=_load_checklist(row["checklist_items"]),
            l2_team=row["l2_team"],
        )

    # ============================================================
    # Escalations
    # ============================================================

    async def create_escalation(self, data: EscalationInput) -> int:
        await self._ensure_initialized()

        async with self._connect() as db:
            if data.template_id is not None:
                cursor = await db.execute("SELECT 1 FROM templates WHERE id = ?", (data.template_id,))
                if await cursor.fetchone() is None:
                    raise ValidationError(f"Template {data.template_id} not found")

            now = utc_timestamp()
            cursor = await db.execute(
                """
                INSERT INTO escalations
                (ticket_id, template_id, problem_summary, checklist, current_status, next_steps,
                 llm_summary, llm_confidence, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.ticket_id,
                    data.template_id,
                    data.problem_summary,
                    _dump_checklist(data.checklist),
                    data.current_status,
                    data.next_steps,
                    data.llm_summary,
                    data.llm_confidence,
                    EscalationStatus.DRAFT.value,
                    now,
                    now,
                ),
            )
            escalation_id = cursor.lastrowid

            await db.execute(
                "INSERT INTO audit_log (escalation_id, action, details, created_at) VALUES (?, ?, ?, ?)",
                (
                    escalation_id,
                    AuditAction.CREATED.value,
                    json.dumps({"ticket_id": data.ticket_id, "template_id": data.template_id}),
                    now,
                ),
            )
            await db.commit()

        logger.info(f"Created escalation {escalation_id} for ticket {data.ticket_id}")
        return escalation_id

    async def get_escalation(self, escalation_id: int) -> Escalation:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_ESCALATION_COLUMNS} FROM escalations WHERE id = ?",
                (escalation_id,),
            )
            row = await cursor.fetchone()

        if row is None:
            raise NotFoundError(f"Escalation {escalation_id} not found")
        return self._row_to_escalation(row)

    async def list_escalations(self) -> List[EscalationSummary]:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, ticket_id, problem_summary, status, created_at
                FROM escalations
                ORDER BY created_at DESC, id DESC
                """
            )
            rows = await cursor.fetchall()

        return [
            EscalationSummary(
                id=row["id"],
                ticket_id=row["ticket_id"],
                problem_summary=row["problem_summary"],
                status=EscalationStatus.parse(row["status"]),
                created_at=parse_utc_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    async def delete_escalation(self, escalation_id: int) -> None:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM escalations WHERE id = ?", (escalation_id,))
            deleted = cursor.rowcount
            await db.commit()

        if deleted == 0:
            raise NotFoundError(f"Escalation {escalation_id} not found")
        logger.info(f"Deleted escalation {escalation_id}")

    async def update_status(
        self,
        escalation_id: int,
        status: EscalationStatus,
        markdown_output: Optional[str] = None,
        posted_at: Optional[datetime] = None,
        last_error: Optional[str] = None,
    ) -> None:
        if status == EscalationStatus.POSTED and posted_at is None:
            raise ValidationError("POSTED status requires posted_at timestamp")
        if status != EscalationStatus.POSTED and posted_at is not None:
            raise ValidationError(f"posted_at can only be set when status is POSTED (got {status.value})")

        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                UPDATE escalations
                SET status = ?, markdown_output = ?, posted_at = ?, last_error = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    status.value,
                    markdown_output,
                    utc_timestamp(posted_at) if posted_at else None,
                    last_error,
                    utc_timestamp(),
                    escalation_id,
                ),
            )
            updated = cursor.rowcount
            await db.commit()

        if updated == 0:
            raise NotFoundError(f"Escalation {escalation_id} not found")
        logger.info(f"Escalation {escalation_id} status set to {status.value}")

    # ============================================================
    # Audit log
    # ============================================================

    async def append_audit(self, escalation_id: int, action: str, details: Dict[str, Any]) -> None:
        await self._ensure_initialized()

        async with self._connect() as db:
            await db.execute(
                "INSERT INTO audit_log (escalation_id, action, details, created_at) VALUES (?, ?, ?, ?)",
                (escalation_id, action, json.dumps(details, default=str), utc_timestamp()),
            )
            await db.commit()

    async def list_audit(self, escalation_id: int) -> List[AuditEntry]:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, escalation_id, action, details, created_at
                FROM audit_log WHERE escalation_id = ? ORDER BY id
                """,
                (escalation_id,),
            )
            rows = await cursor.fetchall()

        return [
            AuditEntry(
                id=row["id"],
                escalation_id=row["escalation_id"],
                action=row["action"],
                details=json.loads(row["details"]) if row["details"] else {},
                created_at=parse_utc_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    # ============================================================
    # Templates
    # ============================================================

    async def list_templates(self) -> List[Template]:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, name, description, category, checklist_items, l2_team
                FROM templates ORDER BY category, name
                """
            )
            rows = await cursor.fetchall()

        return [self._row_to_template(row) for row in rows]

    async def get_template(self, template_id: int) -> Template:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, name, description, category, checklist_items, l2_team
                FROM templates WHERE id = ?
                """,
                (template_id,),
            )
            row = await cursor.fetchone()

        if row is None:
            raise NotFoundError(f"Template {template_id} not found")
        return self._row_to_template(row)

    async def seed_templates(self, templates: Sequence[Dict[str, Any]]) -> int:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM templates")
            (count,) = await cursor.fetchone()
            if count > 0:
                return 0

            now = utc_timestamp()
            for template in templates:
                items = [ChecklistItem(**item) for item in template.get("checklist_items", [])]
                await db.execute(
                    """
                    INSERT INTO templates (name, description, category, checklist_items, l2_team, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        template["name"],
                        template.get("description", ""),
                        template["category"],
                        _dump_checklist(items),
                        template.get("l2_team"),
                        now,
                    ),
                )
            await db.commit()

        logger.info(f"Seeded {len(templates)} templates")
        return len(templates)

    # ============================================================
    # API config
    # ============================================================

    async def save_api_config(self, config: ApiConfig) -> None:
        await self._ensure_initialized()

        async with self._connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO api_config (id, jira_email, ollama_endpoint, ollama_model, updated_at)
                VALUES (1, ?, ?, ?, ?)
                """,
                (config.jira_email, config.ollama_endpoint, config.ollama_model, utc_timestamp()),
            )
            await db.commit()

    async def get_api_config(self) -> Optional[ApiConfig]:
        await self._ensure_initialized()

        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT jira_email, ollama_endpoint, ollama_model FROM api_config WHERE id = 1"
            )
            row = await cursor.fetchone()

        if row is None:
            return None
        return ApiConfig(
            jira_email=row["jira_email"],
            ollama_endpoint=row["ollama_endpoint"],
            ollama_model=row["ollama_model"],
        )
