"""
Shared pytest fixtures for docrefs tests.

Every test runs against a fresh service registry and a fresh in-memory
document store.
"""

import asyncio
from typing import Any

import pytest

from docrefs.dependencies import reset_services
from docrefs.refs.actions import BaseAction
from docrefs.store import MemoryDocumentStore, configure_store


class RecordAction(BaseAction):
    """Action logging its calls instead of writing anything."""

    kind: str = "record"
    label: str
    log: Any = None
    delay: float = 0.0

    async def run(self, txn, item, ref_item):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append((self.label, item.id, ref_item.id))


class FailingAction(BaseAction):
    kind: str = "fail"

    async def run(self, txn, item, ref_item):
        raise RuntimeError(f"cannot touch {ref_item.id}")


@pytest.fixture(autouse=True)
def services():
    reset_services()
    yield
    reset_services()


@pytest.fixture
def store():
    return configure_store(MemoryDocumentStore())
