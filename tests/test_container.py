from __future__ import annotations

from datetime import timedelta

import pytest

from approval_rules.config import Settings
from approval_rules.core.container import Container


@pytest.mark.asyncio
async def test_container_wires_an_isolated_manager() -> None:
    container = Container(Settings(database_url="sqlite://", pending_ttl_seconds=42))
    await container.start()
    try:
        assert container.sweeper.running
        assert container.store.ttl == timedelta(seconds=42)

        result = container.manager.list_rules("tenant_a")
        assert result.success is True
        assert result.data == []
    finally:
        await container.stop()

    assert not container.sweeper.running
