from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from pydantic import ValidationError

from onboarding.catalog.line_items import LineItemCard
from onboarding.core.errors import NotFoundError, PersistError, StructuralError
from onboarding.core.logging_config import logger
from onboarding.core.settings import settings
from onboarding.documents.template_model import Template
from onboarding.storage.contracts import Ack
from onboarding.storage.serialization import QuoteSnapshotV1, TemplateDocumentV1, cards_to_documents


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _SqliteStore(ABC):
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.ONBOARDING_DB_PATH
        self._init()

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abstractmethod
    def _init(self) -> None:
        """Create tables and indexes."""


class SqliteTemplateStore(_SqliteStore):
    """Whole templates as JSON documents, one row per template id."""

    def _init(self) -> None:
        with self._conn() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS templates (
                  template_id TEXT PRIMARY KEY,
                  name TEXT NOT NULL,
                  document_type TEXT NOT NULL,
                  is_active INTEGER NOT NULL,
                  document TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                )
                """
            )

    def save(self, template: Template) -> str:
        template_id = template.template_id or f"tpl_{uuid4().hex}"
        doc = TemplateDocumentV1.from_domain(template)
        doc.template_id = template_id
        now = _now_iso()
        try:
            with self._conn() as con:
                con.execute(
                    """
                    INSERT INTO templates
                      (template_id, name, document_type, is_active, document, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(template_id) DO UPDATE SET
                      name = excluded.name,
                      document_type = excluded.document_type,
                      is_active = excluded.is_active,
                      document = excluded.document,
                      updated_at = excluded.updated_at
                    """,
                    (
                        template_id,
                        template.name,
                        template.document_type.value,
                        1 if template.is_active else 0,
                        doc.model_dump_json(),
                        now,
                        now,
                    ),
                )
        except sqlite3.Error as e:
            logger.bind(template_id=template_id, error=str(e)).error("template_save_failed")
            raise PersistError(f"Could not save template {template_id}", {"templateId": template_id}) from e

        logger.bind(template_id=template_id, sections=len(template.sections)).info("template_persisted")
        return template_id

    def load(self, template_id: str) -> Template:
        try:
            with self._conn() as con:
                row = con.execute(
                    "SELECT document FROM templates WHERE template_id = ?",
                    (template_id,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.bind(template_id=template_id, error=str(e)).error("template_load_failed")
            raise PersistError(f"Could not load template {template_id}", {"templateId": template_id}) from e
        if not row:
            logger.bind(template_id=template_id).warning("template_not_found")
            raise NotFoundError(f"Unknown template id: {template_id}", {"templateId": template_id})
        try:
            return TemplateDocumentV1.model_validate_json(row["document"]).to_domain()
        except (ValidationError, StructuralError, ValueError) as e:
            logger.bind(template_id=template_id, error=str(e)).error("template_document_invalid")
            raise PersistError(
                f"Stored template {template_id} is not a valid document", {"templateId": template_id}
            ) from e

    def list_ids(self, *, active_only: bool = False) -> List[str]:
        sql = "SELECT template_id FROM templates"
        if active_only:
            sql += " WHERE is_active = 1"
        with self._conn() as con:
            rows = con.execute(sql + " ORDER BY created_at, template_id").fetchall()
        return [r["template_id"] for r in rows]

    def delete(self, template_id: str) -> None:
        with self._conn() as con:
            cur = con.execute("DELETE FROM templates WHERE template_id = ?", (template_id,))
        if cur.rowcount == 0:
            raise NotFoundError(f"Unknown template id: {template_id}", {"templateId": template_id})


class SqliteQuoteSnapshotStore(_SqliteStore):
    """Append-only quote snapshots; the latest one per context wins on read."""

    def _init(self) -> None:
        with self._conn() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS quote_snapshots (
                  snapshot_id TEXT PRIMARY KEY,
                  context_id TEXT NOT NULL,
                  document TEXT NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )
            con.execute(
                "CREATE INDEX IF NOT EXISTS ix_quote_snapshots_context ON quote_snapshots (context_id)"
            )

    def save_quote_snapshot(self, cards: Sequence[LineItemCard], context_id: str) -> Ack:
        doc = QuoteSnapshotV1(
            snapshot_id=uuid4().hex,
            context_id=context_id,
            created_at=_now_iso(),
            cards=cards_to_documents(cards),
        )
        try:
            with self._conn() as con:
                con.execute(
                    """
                    INSERT INTO quote_snapshots (snapshot_id, context_id, document, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (doc.snapshot_id, doc.context_id, doc.model_dump_json(), doc.created_at),
                )
        except sqlite3.Error as e:
            logger.bind(context_id=context_id, error=str(e)).error("quote_snapshot_failed")
            raise PersistError(f"Could not save quote snapshot for {context_id}", {"contextId": context_id}) from e

        logger.bind(context_id=context_id, snapshot_id=doc.snapshot_id, cards=len(doc.cards)).info(
            "quote_snapshot_saved"
        )
        return Ack(context_id=context_id, snapshot_id=doc.snapshot_id, cards=len(doc.cards))

    def latest(self, context_id: str) -> List[LineItemCard]:
        try:
            with self._conn() as con:
                row = con.execute(
                    """
                    SELECT document FROM quote_snapshots
                    WHERE context_id = ?
                    ORDER BY created_at DESC, rowid DESC
                    LIMIT 1
                    """,
                    (context_id,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.bind(context_id=context_id, error=str(e)).error("quote_snapshot_load_failed")
            raise PersistError(f"Could not load quote snapshot for {context_id}", {"contextId": context_id}) from e
        if not row:
            raise NotFoundError(f"No quote snapshot for context {context_id}", {"contextId": context_id})
        try:
            return QuoteSnapshotV1.model_validate_json(row["document"]).to_domain()
        except (ValidationError, ValueError) as e:
            logger.bind(context_id=context_id, error=str(e)).error("quote_snapshot_invalid")
            raise PersistError(
                f"Stored quote snapshot for {context_id} is not a valid document", {"contextId": context_id}
            ) from e
