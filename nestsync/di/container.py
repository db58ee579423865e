from __future__ import annotations

from typing import Any

from nestsync.config import AppConfig, load_config
from nestsync.core.logging_utils import get_logger, setup_json_logging
from nestsync.db.session import DatabaseSessionManager
from nestsync.db.transaction import TransactionalRunner
from nestsync.infrastructure.persistence.sqlite.node_store import SqliteNodeStore
from nestsync.services.tree_mapper import TreeMapper

logger = get_logger(__name__)


def configure_logging(cfg: AppConfig) -> None:
    setup_json_logging(
        level=cfg.runtime.log_level,
        use_loguru=cfg.runtime.use_loguru,
        log_file=cfg.runtime.log_file,
    )


def build_session(cfg: AppConfig, *, migrate: bool = True) -> DatabaseSessionManager:
    """Open the configured database and make sure the node table exists."""
    db = DatabaseSessionManager(
        path=cfg.database.path,
        operation_timeout=cfg.database.operation_timeout,
    )
    if migrate:
        db.migrate()
    return db


def build_tree_mapper(
    cfg: AppConfig | None = None,
    *,
    db: DatabaseSessionManager | None = None,
    anchor_key: Any | None = None,
) -> TreeMapper:
    """Construct a TreeMapper with its store and transactional runner.

    Args:
        cfg: Application configuration. If None, loads from environment.
        db: Database session manager. If None, creates from config.
        anchor_key: Existing record to scope the mapping under, or None for
            the whole collection.

    Returns:
        Configured TreeMapper instance.
    """
    cfg = cfg or load_config()
    if db is None:
        db = build_session(cfg)

    runner = TransactionalRunner(
        db.database,
        max_retries=cfg.database.max_retries,
        backoff_base=cfg.database.retry_backoff_base,
    )
    mapper = TreeMapper(
        SqliteNodeStore(db.database),
        runner,
        anchor_key=anchor_key,
        children_key_name=cfg.tree.children_key_name,
        key_name=cfg.tree.key_name,
    )
    logger.debug(
        "tree_mapper_built",
        extra={"anchor": anchor_key, "children_key_name": cfg.tree.children_key_name},
    )
    return mapper
