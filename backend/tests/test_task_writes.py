import asyncio
import logging

import pytest

from taskboard.core.errors import SchemaMismatchError
from taskboard.services.task_writes import awrite_with_status_fallback, write_with_status_fallback


def _legacy_only(calls):
    def write(with_status):
        calls.append(with_status)
        if with_status:
            raise SchemaMismatchError("status")
        return "saved"

    return write


def test_sync_write_retries_once_without_status(caplog):
    calls = []
    with caplog.at_level(logging.INFO, logger="taskboard.metrics"):
        assert write_with_status_fallback(_legacy_only(calls), action="update") == "saved"
    assert calls == [True, False]
    assert "store.schema_fallback" in caplog.text


def test_async_write_retries_once_without_status(caplog):
    calls = []
    sync_write = _legacy_only(calls)

    async def write(with_status):
        return sync_write(with_status)

    with caplog.at_level(logging.INFO, logger="taskboard.metrics"):
        assert asyncio.run(awrite_with_status_fallback(write, action="create")) == "saved"
    assert calls == [True, False]
    assert "store.schema_fallback" in caplog.text


def test_mismatch_on_other_attribute_is_not_retried():
    calls = []

    def write(with_status):
        calls.append(with_status)
        raise SchemaMismatchError("due_at")

    async def awrite(with_status):
        return write(with_status)

    with pytest.raises(SchemaMismatchError):
        write_with_status_fallback(write, action="update")
    with pytest.raises(SchemaMismatchError):
        asyncio.run(awrite_with_status_fallback(awrite, action="create"))
    assert calls == [True, True]
