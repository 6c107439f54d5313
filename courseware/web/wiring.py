"""
Service wiring for the web adapter.

Why:
    Routes stay thin and framework-agnostic use cases receive their
    repositories here. With a Postgres DSN configured the DB repositories are
    used; otherwise in-memory ones (dev/test only, refused in prod by
    `config.ensure_secure_config_on_startup`).

Tests replace the whole bundle via `set_services()`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from courseware.access.vault import AccessRepoProtocol, AccessTokenVault
from courseware.content.service import ContentService
from courseware.db import configured_dsn
from courseware.evaluation.engine import EvaluationEngine, build_engine
from courseware.identity_access.stores import SessionStore
from courseware.progress.store import ProgressStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    content: ContentService
    progress: ProgressStore
    access_repo: AccessRepoProtocol
    vault: AccessTokenVault
    sessions: SessionStore
    _engine: Optional[EvaluationEngine] = field(default=None, repr=False)

    @property
    def engine(self) -> EvaluationEngine:
        # Built on first use so configuration errors surface per request.
        if self._engine is None:
            self._engine = build_engine()
        return self._engine


def build_memory_services(*, engine: Optional[EvaluationEngine] = None) -> Services:
    from courseware.access.repo_memory import MemoryAccessRepo
    from courseware.content.repo_memory import MemoryContentRepo
    from courseware.progress.repo_memory import MemoryProgressRepo

    access_repo = MemoryAccessRepo()
    return Services(
        content=ContentService(MemoryContentRepo()),
        progress=ProgressStore(MemoryProgressRepo()),
        access_repo=access_repo,
        vault=AccessTokenVault(access_repo),
        sessions=SessionStore(),
        _engine=engine,
    )


def build_db_services(dsn: str) -> Services:
    from courseware.access.repo_db import DBAccessRepo
    from courseware.content.repo_db import DBContentRepo
    from courseware.progress.repo_db import DBProgressRepo

    access_repo = DBAccessRepo(dsn)
    return Services(
        content=ContentService(DBContentRepo(dsn)),
        progress=ProgressStore(DBProgressRepo(dsn)),
        access_repo=access_repo,
        vault=AccessTokenVault(access_repo),
        sessions=SessionStore(),
    )


_SERVICES: Services | None = None


def get_services() -> Services:
    global _SERVICES
    if _SERVICES is None:
        dsn = configured_dsn()
        if dsn:
            _SERVICES = build_db_services(dsn)
            logger.info("web.wiring.configured backend=postgres")
        else:
            _SERVICES = build_memory_services()
            logger.info("web.wiring.configured backend=memory")
    return _SERVICES


def set_services(services: Any) -> None:
    """Allow tests or startup code to provide concrete services."""
    global _SERVICES
    _SERVICES = services
