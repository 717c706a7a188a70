# --------------------------------
# DI container
# --------------------------------

import logging
from datetime import timedelta
from functools import lru_cache

from approval_rules.config import Settings, settings
from approval_rules.db.connection import init_db, make_engine, make_session_factory
from approval_rules.domain.analysis import RuleAnalyzer
from approval_rules.domain.pending import PendingActionStore, PendingActionSweeper
from approval_rules.domain.rules.repository import RuleRepository
from approval_rules.runtime import RuleLifecycleManager, RuleQueryService


class Container:
    def __init__(self, config: Settings = settings):
        logging.getLogger("approval_rules").setLevel(config.log_level.upper())

        self._engine = make_engine(config.database_url)
        init_db(self._engine)
        self._session_factory = make_session_factory(self._engine)

        self._repository = RuleRepository(self._session_factory)
        self._store = PendingActionStore(
            ttl=timedelta(seconds=config.pending_ttl_seconds)
        )
        self._analyzer = RuleAnalyzer(
            self._repository,
            suggestion_limit=config.suggestion_limit,
        )
        self._manager = RuleLifecycleManager(
            repository=self._repository,
            store=self._store,
            analyzer=self._analyzer,
            queries=RuleQueryService(self._repository),
        )
        self._sweeper = PendingActionSweeper(
            self._store,
            interval=config.sweep_interval_seconds,
        )

    @property
    def manager(self):
        return self._manager

    @property
    def analyzer(self):
        return self._analyzer

    @property
    def store(self):
        return self._store

    @property
    def sweeper(self):
        return self._sweeper

    async def start(self):
        self._sweeper.start()

    async def stop(self):
        await self._sweeper.stop()
        self._engine.dispose()


@lru_cache
def get_container():
    return Container()
