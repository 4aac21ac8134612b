import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from app.consumers.outbox_publisher import UNCONFIGURED_ERROR, publish_due_messages, run_outbox_publisher
from app.events.outbox_store import create_outbox_message, dequeue_due_batch
from app.models.outbox import OutboxMessage
from app.schemas.events import IntegrationEventEnvelope
from app.testing.testing_mocks import InMemoryQueueClient

EVENTS_QUEUE = "events-queue"


def _now():
    return datetime.now(timezone.utc)


async def _enqueue(aggregate_id="P1"):
    envelope = IntegrationEventEnvelope(type="PaymentProcessed", source="payments-svc", aggregate_id=aggregate_id)
    return await create_outbox_message(envelope, EVENTS_QUEUE)


@pytest.mark.asyncio
async def test_due_message_is_sent_and_marked_published(db):
    message = await _enqueue()
    queue = InMemoryQueueClient()

    fetched = await publish_due_messages(queue)

    assert fetched == 1
    assert queue.sent == [(EVENTS_QUEUE, message.body)]
    row = await OutboxMessage.get(id=message.id)
    assert row.published_at is not None
    assert row.attempts == 0
    assert row.last_external_message_id == queue.queues[EVENTS_QUEUE][0].message_id
    assert await publish_due_messages(queue) == 0


@pytest.mark.asyncio
async def test_send_failure_schedules_exponential_retry(db):
    message = await _enqueue()
    queue = InMemoryQueueClient(fail_sends=2)
    before = _now()

    await publish_due_messages(queue)

    row = await OutboxMessage.get(id=message.id)
    assert row.published_at is None
    assert row.attempts == 1
    assert row.last_error == "send failed"
    assert row.next_attempt_at > before
    # First retry waits 2**0 seconds
    assert row.next_attempt_at <= _now() + timedelta(seconds=1)

    # Not due yet
    assert await dequeue_due_batch(10, before) == []

    await publish_due_messages(queue, now=_now() + timedelta(seconds=2))
    row = await OutboxMessage.get(id=message.id)
    assert row.attempts == 2
    assert row.next_attempt_at > _now() + timedelta(seconds=1)

    await publish_due_messages(queue, now=_now() + timedelta(seconds=5))
    row = await OutboxMessage.get(id=message.id)
    assert row.published_at is not None
    assert row.attempts == 2
    assert row.last_error is None


@pytest.mark.asyncio
async def test_batch_outcomes_use_the_batch_clock(db):
    first = await _enqueue("P1")
    second = await _enqueue("P2")
    queue = InMemoryQueueClient(fail_sends=1)
    batch_time = (_now() + timedelta(hours=1)).replace(microsecond=0)

    await publish_due_messages(queue, now=batch_time)

    failed_row = await OutboxMessage.get(id=first.id)
    published_row = await OutboxMessage.get(id=second.id)
    assert failed_row.next_attempt_at == batch_time + timedelta(seconds=1)
    assert published_row.published_at == batch_time


@pytest.mark.asyncio
async def test_missing_queue_client_marks_row_failed(db):
    message = await _enqueue()

    await publish_due_messages(None)

    row = await OutboxMessage.get(id=message.id)
    assert row.published_at is None
    assert row.attempts == 1
    assert row.last_error == UNCONFIGURED_ERROR
    assert row.next_attempt_at > _now() + timedelta(seconds=50)


@pytest.mark.asyncio
async def test_one_failing_row_does_not_block_the_batch(db):
    first = await _enqueue("P1")
    second = await _enqueue("P2")
    queue = InMemoryQueueClient(fail_sends=1)

    assert await publish_due_messages(queue) == 2

    assert (await OutboxMessage.get(id=first.id)).published_at is None
    assert (await OutboxMessage.get(id=second.id)).published_at is not None


@pytest.mark.asyncio
async def test_bookkeeping_error_on_one_row_does_not_stop_the_rest(db):
    await _enqueue("P1")
    await _enqueue("P2")
    queue = InMemoryQueueClient()

    with patch("app.consumers.outbox_publisher.mark_published", new_callable=AsyncMock) as mock_published, \
            patch("app.consumers.outbox_publisher.mark_failed", new_callable=AsyncMock) as mock_failed:
        mock_published.side_effect = [RuntimeError("write conflict"), None]
        mock_failed.side_effect = RuntimeError("still failing")
        await publish_due_messages(queue)

    assert mock_published.await_count == 2
    assert len(queue.sent) == 2


@pytest.mark.asyncio
async def test_publisher_claims_rows_with_owner(db):
    message = await _enqueue()
    queue = InMemoryQueueClient()

    with patch("app.consumers.outbox_publisher.dequeue_due_batch", wraps=dequeue_due_batch) as spy:
        await publish_due_messages(queue, owner="publisher-a")

    assert spy.await_args.kwargs["owner"] == "publisher-a"
    row = await OutboxMessage.get(id=message.id)
    assert row.published_at is not None
    assert row.locked_by is None


@pytest.mark.asyncio
async def test_loop_sleeps_when_idle_and_backs_off_on_errors():
    sleep = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])
    batches = AsyncMock(side_effect=[0, RuntimeError("db unreachable"), 0])

    with patch("app.consumers.outbox_publisher.asyncio.sleep", sleep), \
            patch("app.consumers.outbox_publisher.publish_due_messages", batches):
        with pytest.raises(asyncio.CancelledError):
            await run_outbox_publisher(InMemoryQueueClient(), owner="test", idle_interval_seconds=2, error_backoff_seconds=5)

    assert [c.args[0] for c in sleep.await_args_list] == [2, 5, 2]
