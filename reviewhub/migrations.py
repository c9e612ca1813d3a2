"""SQLite 旧库的补丁迁移。

``create_all`` 只会建缺失的表，不会给已有的表补约束。已有的库在启动时按版本
执行这里的迁移步骤，每个版本只执行一次，记录在 ``schema_migrations``。
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from reviewhub.logging_config import get_logger

logger = get_logger(__name__)

REVIEW_PAIR_COLUMNS = ("project_id", "reviewer_id")


def _table_exists(conn: Connection, table: str) -> bool:
    row = conn.execute(
        text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = :name"),
        {"name": table},
    ).first()
    return row is not None


def unique_indexes_on(conn: Connection, table: str, columns: Iterable[str]) -> List[str]:
    """返回恰好覆盖 ``columns`` 的唯一索引名（含表级 UNIQUE 约束生成的自动索引）。"""

    wanted = set(columns)
    names = []
    # index_list: seq, name, unique, origin, partial
    for _seq, name, unique, *_rest in conn.execute(text(f"PRAGMA index_list('{table}')")):
        if not unique:
            continue
        indexed = {row[2] for row in conn.execute(text(f"PRAGMA index_info('{name}')"))}
        if indexed == wanted:
            names.append(name)
    return names


def _unique_review_pair(conn: Connection) -> None:
    """早期 reviews 表缺少 (project_id, reviewer_id) 唯一约束，补建同名唯一索引。"""

    if not _table_exists(conn, "reviews"):
        return
    if unique_indexes_on(conn, "reviews", REVIEW_PAIR_COLUMNS):
        return
    conn.execute(
        text(
            "CREATE UNIQUE INDEX uq_reviews_project_reviewer "
            "ON reviews (project_id, reviewer_id)"
        )
    )


MIGRATIONS: List[Tuple[str, Callable[[Connection], None]]] = [
    ("0001", _unique_review_pair),
]


def run_migrations(engine: Engine) -> None:
    if engine.url.get_backend_name() != "sqlite":
        return

    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE IF NOT EXISTS schema_migrations ("
                "version TEXT PRIMARY KEY, "
                "applied_at DATETIME DEFAULT CURRENT_TIMESTAMP"
                ")"
            )
        )
        applied = {
            row[0] for row in conn.execute(text("SELECT version FROM schema_migrations"))
        }

    pending = [(version, step) for version, step in MIGRATIONS if version not in applied]
    if not pending:
        return

    _backup_sqlite_db(engine)
    for version, step in pending:
        with engine.begin() as conn:
            step(conn)
            conn.execute(
                text("INSERT INTO schema_migrations (version) VALUES (:version)"),
                {"version": version},
            )
        logger.info("migration_applied", version=version, step=step.__name__)


def _backup_sqlite_db(engine: Engine) -> None:
    db_path = engine.url.database
    if not db_path or db_path == ":memory:":
        return
    source = Path(db_path)
    if source.exists():
        shutil.copy2(source, source.with_suffix(source.suffix + ".bak"))
