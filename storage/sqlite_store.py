"""SQLite-backed update store.

Each call opens its own connection inside a worker thread. The latest
pointer is guarded twice: a partial unique index allows one
``is_latest = 1`` row per (topic_id, anchor), and the read-compare-demote-
insert sequence runs inside a single ``BEGIN IMMEDIATE`` transaction.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sqlite3
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from core import Article, ImpactLevel, SearchProfile, Topic, VerifiedUpdate
from utils.exceptions import StorageError
from .base import BaseUpdateStore, NewerCheck


logger = logging.getLogger(__name__)

R = TypeVar("R")

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS topics (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        is_active INTEGER NOT NULL DEFAULT 1,
        last_scanned_at TEXT,
        search_profiles TEXT NOT NULL DEFAULT '[]',
        allowed_domains TEXT NOT NULL DEFAULT '[]',
        trigger_words TEXT NOT NULL DEFAULT '[]',
        max_articles INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS articles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        url TEXT NOT NULL UNIQUE,
        title TEXT NOT NULL DEFAULT '',
        snippet TEXT NOT NULL DEFAULT '',
        content TEXT NOT NULL DEFAULT '',
        source TEXT,
        topic_id TEXT NOT NULL,
        processed INTEGER NOT NULL DEFAULT 0,
        published_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS verified_updates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        topic_id TEXT NOT NULL,
        anchor TEXT NOT NULL,
        title TEXT NOT NULL,
        summary TEXT NOT NULL,
        impact_level TEXT NOT NULL,
        related_article_ids TEXT NOT NULL DEFAULT '[]',
        deduced_published_date TEXT,
        is_latest INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_articles_topic ON articles(topic_id)",
    "CREATE INDEX IF NOT EXISTS ix_updates_topic_anchor ON verified_updates(topic_id, anchor)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_updates_latest
    ON verified_updates(topic_id, anchor) WHERE is_latest = 1
    """,
    """
    CREATE VIEW IF NOT EXISTS latest_verified_updates AS
    SELECT v.*, t.name AS topic_name
    FROM verified_updates v LEFT JOIN topics t ON t.id = v.topic_id
    WHERE v.is_latest = 1
    """,
]


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_topic(row: sqlite3.Row) -> Topic:
    return Topic(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        is_active=bool(row["is_active"]),
        last_scanned_at=_dt(row["last_scanned_at"]),
        search_profiles=[SearchProfile(**p) for p in json.loads(row["search_profiles"] or "[]")],
        allowed_domains=json.loads(row["allowed_domains"] or "[]"),
        trigger_words=json.loads(row["trigger_words"] or "[]"),
        max_articles=row["max_articles"],
    )


def _row_to_article(row: sqlite3.Row) -> Article:
    return Article(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        snippet=row["snippet"],
        content=row["content"],
        source=row["source"],
        topic_id=row["topic_id"],
        processed=bool(row["processed"]),
        published_at=_dt(row["published_at"]),
        created_at=_dt(row["created_at"]),
    )


def _row_to_update(row: sqlite3.Row) -> VerifiedUpdate:
    return VerifiedUpdate(
        id=row["id"],
        topic_id=row["topic_id"],
        anchor=row["anchor"],
        title=row["title"],
        summary=row["summary"],
        impact_level=ImpactLevel(row["impact_level"]),
        related_article_ids=json.loads(row["related_article_ids"] or "[]"),
        deduced_published_date=_dt(row["deduced_published_date"]),
        is_latest=bool(row["is_latest"]),
        created_at=_dt(row["created_at"]),
    )


class SQLiteUpdateStore(BaseUpdateStore):
    """File-backed relational store."""

    def __init__(self, db_path: str = "./data/regwatch.db", timeout: float = 30.0):
        self.db_path = str(db_path)
        self.timeout = timeout
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    def _init_schema(self) -> None:
        conn = self._connect()
        try:
            for statement in _SCHEMA:
                conn.execute(statement)
        finally:
            conn.close()

    def _transaction(self, work: Callable[[sqlite3.Connection], R]) -> R:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                result = work(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
            return result
        except sqlite3.Error as exc:
            raise StorageError(f"SQLite error: {exc}", {"db_path": self.db_path}) from exc
        finally:
            conn.close()

    async def _run(self, work: Callable[[sqlite3.Connection], R]) -> R:
        return await asyncio.to_thread(self._transaction, work)

    # --- topics ---

    async def upsert_topic(self, topic: Topic) -> Topic:
        def work(conn: sqlite3.Connection) -> Topic:
            conn.execute(
                """
                INSERT INTO topics (id, name, description, is_active, last_scanned_at,
                                    search_profiles, allowed_domains, trigger_words, max_articles)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    is_active = excluded.is_active,
                    last_scanned_at = COALESCE(excluded.last_scanned_at, topics.last_scanned_at),
                    search_profiles = excluded.search_profiles,
                    allowed_domains = excluded.allowed_domains,
                    trigger_words = excluded.trigger_words,
                    max_articles = excluded.max_articles
                """,
                (
                    topic.id,
                    topic.name,
                    topic.description,
                    int(topic.is_active),
                    _iso(topic.last_scanned_at),
                    json.dumps([p.model_dump() for p in topic.search_profiles], ensure_ascii=False),
                    json.dumps(topic.allowed_domains, ensure_ascii=False),
                    json.dumps(topic.trigger_words, ensure_ascii=False),
                    topic.max_articles,
                ),
            )
            row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic.id,)).fetchone()
            return _row_to_topic(row)

        return await self._run(work)

    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        def work(conn: sqlite3.Connection) -> Optional[Topic]:
            row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
            return _row_to_topic(row) if row else None

        return await self._run(work)

    async def list_topics(self, active_only: bool = True) -> List[Topic]:
        def work(conn: sqlite3.Connection) -> List[Topic]:
            sql = "SELECT * FROM topics"
            if active_only:
                sql += " WHERE is_active = 1"
            return [_row_to_topic(row) for row in conn.execute(sql + " ORDER BY id").fetchall()]

        return await self._run(work)

    async def mark_topic_scanned(self, topic_id: str, scanned_at: datetime) -> None:
        def work(conn: sqlite3.Connection) -> None:
            cursor = conn.execute(
                "UPDATE topics SET last_scanned_at = ? WHERE id = ?",
                (_iso(scanned_at), topic_id),
            )
            if cursor.rowcount == 0:
                raise StorageError("Unknown topic", {"topic_id": topic_id})

        await self._run(work)

    # --- articles ---

    async def find_article_by_url(self, url: str) -> Optional[Article]:
        def work(conn: sqlite3.Connection) -> Optional[Article]:
            row = conn.execute("SELECT * FROM articles WHERE url = ? LIMIT 1", (url,)).fetchone()
            return _row_to_article(row) if row else None

        return await self._run(work)

    async def insert_article(self, article: Article) -> Article:
        def work(conn: sqlite3.Connection) -> Article:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO articles (url, title, snippet, content, source, topic_id,
                                          processed, published_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.url,
                        article.title,
                        article.snippet,
                        article.content,
                        article.source,
                        article.topic_id,
                        int(article.processed),
                        _iso(article.published_at),
                        _iso(article.created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise StorageError("Duplicate article url", {"url": article.url}) from exc
            return article.model_copy(update={"id": int(cursor.lastrowid)})

        return await self._run(work)

    async def get_articles(self, article_ids: Sequence[int]) -> List[Article]:
        ids = [int(i) for i in article_ids]
        if not ids:
            return []

        def work(conn: sqlite3.Connection) -> List[Article]:
            placeholders = ",".join("?" for _ in ids)
            rows = conn.execute(f"SELECT * FROM articles WHERE id IN ({placeholders})", ids).fetchall()
            by_id = {row["id"]: _row_to_article(row) for row in rows}
            return [by_id[i] for i in ids if i in by_id]

        return await self._run(work)

    async def mark_articles_processed(self, article_ids: Sequence[int]) -> int:
        ids = sorted({int(i) for i in article_ids})
        if not ids:
            return 0

        def work(conn: sqlite3.Connection) -> int:
            placeholders = ",".join("?" for _ in ids)
            cursor = conn.execute(f"UPDATE articles SET processed = 1 WHERE id IN ({placeholders})", ids)
            return int(cursor.rowcount)

        return await self._run(work)

    # --- verified updates ---

    @staticmethod
    def _latest_row(conn: sqlite3.Connection, topic_id: str, anchor: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT * FROM verified_updates WHERE topic_id = ? AND anchor = ? AND is_latest = 1 LIMIT 1",
            (topic_id, anchor),
        ).fetchone()

    async def get_latest_update(self, topic_id: str, anchor: str) -> Optional[VerifiedUpdate]:
        def work(conn: sqlite3.Connection) -> Optional[VerifiedUpdate]:
            row = self._latest_row(conn, topic_id, anchor)
            return _row_to_update(row) if row else None

        return await self._run(work)

    async def record_verified_update(self, update: VerifiedUpdate, is_newer: NewerCheck) -> VerifiedUpdate:
        def work(conn: sqlite3.Connection) -> VerifiedUpdate:
            row = self._latest_row(conn, update.topic_id, update.anchor)
            current = _row_to_update(row) if row else None
            promote = bool(is_newer(update, current))
            if promote and current is not None:
                conn.execute("UPDATE verified_updates SET is_latest = 0 WHERE id = ?", (current.id,))

            cursor = conn.execute(
                """
                INSERT INTO verified_updates (topic_id, anchor, title, summary, impact_level,
                                              related_article_ids, deduced_published_date,
                                              is_latest, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    update.topic_id,
                    update.anchor,
                    update.title,
                    update.summary,
                    update.impact_level.value,
                    json.dumps(list(update.related_article_ids)),
                    _iso(update.deduced_published_date),
                    int(promote),
                    _iso(update.created_at),
                ),
            )
            return update.model_copy(update={"id": int(cursor.lastrowid), "is_latest": promote})

        return await self._run(work)

    async def list_updates(self, topic_id: Optional[str] = None, anchor: Optional[str] = None) -> List[VerifiedUpdate]:
        def work(conn: sqlite3.Connection) -> List[VerifiedUpdate]:
            where: List[str] = []
            params: List[Any] = []
            if topic_id is not None:
                where.append("topic_id = ?")
                params.append(topic_id)
            if anchor is not None:
                where.append("anchor = ?")
                params.append(anchor)
            sql = "SELECT * FROM verified_updates"
            if where:
                sql += " WHERE " + " AND ".join(where)
            sql += " ORDER BY created_at DESC, id DESC"
            return [_row_to_update(row) for row in conn.execute(sql, params).fetchall()]

        return await self._run(work)

    async def list_latest_updates(self, topic_id: Optional[str] = None) -> List[VerifiedUpdate]:
        def work(conn: sqlite3.Connection) -> List[VerifiedUpdate]:
            sql = "SELECT * FROM latest_verified_updates"
            params: List[Any] = []
            if topic_id is not None:
                sql += " WHERE topic_id = ?"
                params.append(topic_id)
            sql += " ORDER BY created_at DESC, id DESC"
            return [_row_to_update(row) for row in conn.execute(sql, params).fetchall()]

        return await self._run(work)
