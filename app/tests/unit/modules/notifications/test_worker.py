"""Unit tests for the notification worker pool."""

import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from freezegun import freeze_time

from modules.notifications.channels import ChannelType
from modules.notifications.errors import (
    PermanentSendError,
    RenderError,
    RetryableSendError,
)
from modules.notifications.queue import QueueStatus
from modules.notifications.worker import (
    NotificationWorker,
    WorkerConfig,
    calculate_backoff,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def email_sender(mock_sender_factory):
    return mock_sender_factory(ChannelType.EMAIL)


@pytest.fixture
def worker_factory(repository, renderer, metrics, dispatcher_factory, email_sender):
    """Factory for a NotificationWorker over the in-memory repository.

    Example:
        worker = worker_factory(batch_size=10)
        worker = worker_factory(senders=[chat_sender])
    """

    def _factory(senders=None, renderer_override=None, **config_overrides):
        return NotificationWorker(
            repository,
            dispatcher_factory(senders if senders is not None else [email_sender]),
            renderer_override or renderer,
            metrics,
            WorkerConfig(**config_overrides),
        )

    return _factory


@pytest.fixture
def enqueue(repository, channel_factory, queue_item_factory):
    """Save a channel and enqueue one due item for it.

    Example:
        item = enqueue(attempts=2)
        item = enqueue(channel={"is_verified": False})
    """

    def _enqueue(item_id="q-1", channel=None, attempts=0, **item_overrides):
        channel_fields = {"id": "ch-1"}
        channel_fields.update(channel or {})
        if channel_fields.pop("missing", False) is False:
            repository.save_channel(channel_factory(**channel_fields))

        item = queue_item_factory(
            id=item_id, channel_id=channel_fields["id"], **item_overrides
        )
        repository.enqueue(item)

        # Burn attempts through the store so accounting matches real retries
        past = datetime.now(timezone.utc) - timedelta(seconds=1)
        for _ in range(attempts):
            repository.fetch_pending(1000)
            repository.mark_for_retry(item.id, "earlier failure", past)
        return repository.get_item(item.id)

    return _enqueue


class TestWorkerConfig:
    """Tests for WorkerConfig defaults and validation."""

    def test_defaults(self):
        """Defaults match the documented pool settings."""
        config = WorkerConfig()

        assert config.batch_size == 100
        assert config.poll_interval_seconds == 5.0
        assert config.initial_backoff_seconds == 1.0
        assert config.max_backoff_seconds == 300.0
        assert config.backoff_multiplier == 2.0
        assert config.num_workers == 5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"poll_interval_seconds": 0},
            {"initial_backoff_seconds": 0},
            {"initial_backoff_seconds": 10, "max_backoff_seconds": 5},
            {"backoff_multiplier": 0.5},
            {"num_workers": 0},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        """Invalid configuration raises ValueError."""
        with pytest.raises(ValueError):
            WorkerConfig(**overrides)


class TestCalculateBackoff:
    """Tests for the exponential backoff schedule."""

    @pytest.mark.parametrize(
        "attempt,seconds", [(1, 1), (2, 2), (3, 4), (4, 8), (5, 16)]
    )
    def test_doubles_from_one_second(self, attempt, seconds):
        """Default schedule is 1s, 2s, 4s, 8s, 16s."""
        assert calculate_backoff(attempt, WorkerConfig()) == timedelta(seconds=seconds)

    def test_capped_at_max_backoff(self):
        """Attempt 100 is capped at five minutes."""
        assert calculate_backoff(100, WorkerConfig()) == timedelta(minutes=5)

    def test_huge_attempt_does_not_overflow(self):
        """Very large attempt numbers stay at the cap."""
        assert calculate_backoff(10_000, WorkerConfig()) == timedelta(minutes=5)

    def test_multiplier_of_one_is_constant(self):
        """A multiplier of 1 keeps every retry at the initial delay."""
        config = WorkerConfig(initial_backoff_seconds=5, backoff_multiplier=1)

        assert calculate_backoff(1, config) == timedelta(seconds=5)
        assert calculate_backoff(1_000_000, config) == timedelta(seconds=5)

    def test_custom_schedule(self):
        """Initial delay and multiplier are configurable."""
        config = WorkerConfig(
            initial_backoff_seconds=10, backoff_multiplier=3, max_backoff_seconds=60
        )

        assert calculate_backoff(1, config) == timedelta(seconds=10)
        assert calculate_backoff(2, config) == timedelta(seconds=30)
        assert calculate_backoff(3, config) == timedelta(seconds=60)


class TestProcessBatch:
    """Tests for NotificationWorker.process_batch outcomes."""

    def test_no_items(self, worker_factory, sample_value):
        """An empty queue yields zero stats and no fetch count."""
        stats = worker_factory().process_batch()

        assert stats == {
            "processed": 0,
            "sent": 0,
            "retried": 0,
            "failed": 0,
            "skipped": 0,
        }
        assert sample_value("notifications_queue_fetched_total") == 0

    def test_success(self, worker_factory, enqueue, repository, email_sender, sample_value):
        """A delivered item is marked sent with one attempt."""
        enqueue()

        stats = worker_factory().process_batch()

        assert stats["processed"] == 1
        assert stats["sent"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.SENT
        assert item.attempts == 1
        assert item.sent_at is not None

        notification = email_sender.send.call_args[0][0]
        assert notification.to == "user@example.com"
        assert notification.subject == "[Incident] API outage"
        assert "Incident: API outage" in notification.body

        assert sample_value(
            "notifications_sent_total", channel_type="email", status="success"
        ) == 1
        assert sample_value(
            "notifications_send_duration_seconds_count", channel_type="email"
        ) == 1
        assert sample_value("notifications_queue_fetched_total") == 1

    @freeze_time("2024-03-15 12:00:00")
    def test_retryable_error_schedules_retry(
        self, worker_factory, enqueue, repository, email_sender, sample_value
    ):
        """A retryable failure reschedules with backoff for the next attempt."""
        enqueue()
        email_sender.send.side_effect = RetryableSendError("smtp timeout")

        stats = worker_factory().process_batch()

        assert stats["retried"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.PENDING
        assert item.attempts == 1
        assert item.last_error == "smtp timeout"
        assert item.next_attempt_at == NOW + timedelta(seconds=1)
        assert sample_value(
            "notifications_sent_total", channel_type="email", status="retry"
        ) == 1

    @freeze_time("2024-03-15 12:00:00")
    def test_second_retry_doubles_delay(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """The second retry waits two seconds."""
        enqueue(attempts=1)
        email_sender.send.side_effect = RetryableSendError("smtp timeout")

        worker_factory().process_batch()

        item = repository.get_item("q-1")
        assert item.attempts == 2
        assert item.next_attempt_at == NOW + timedelta(seconds=2)

    @freeze_time("2024-03-15 12:00:00")
    def test_retry_after_hint_extends_delay(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """Upstream retry-after hints lengthen the delay."""
        enqueue()
        email_sender.send.side_effect = RetryableSendError("rate limited", retry_after=30)

        worker_factory().process_batch()

        assert repository.get_item("q-1").next_attempt_at == NOW + timedelta(seconds=30)

    def test_max_attempts_exhausted(
        self, worker_factory, enqueue, repository, email_sender, sample_value
    ):
        """The last allowed attempt fails the item terminally."""
        enqueue(attempts=2, max_attempts=3)
        email_sender.send.side_effect = RetryableSendError("smtp timeout")

        stats = worker_factory().process_batch()

        assert stats["failed"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.attempts == 3
        assert item.last_error == "max attempts exceeded: smtp timeout"
        assert sample_value(
            "notifications_sent_total", channel_type="email", status="failed"
        ) == 1

    def test_one_below_limit_still_retries(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """With attempts + 1 below max_attempts the item is retried."""
        enqueue(attempts=1, max_attempts=3)
        email_sender.send.side_effect = RetryableSendError("smtp timeout")

        worker_factory().process_batch()

        assert repository.get_item("q-1").status == QueueStatus.PENDING

    def test_single_attempt_budget_fails_first_error(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """max_attempts=1 means the first retryable failure is terminal."""
        enqueue(max_attempts=1)
        email_sender.send.side_effect = RetryableSendError("smtp timeout")

        worker_factory().process_batch()

        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.last_error.startswith("max attempts exceeded")

    def test_permanent_error_fails_immediately(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """Non-retryable failures are terminal on the first attempt."""
        enqueue()
        email_sender.send.side_effect = PermanentSendError("mailbox does not exist")

        stats = worker_factory().process_batch()

        assert stats["failed"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.attempts == 1
        assert item.last_error == "mailbox does not exist"

    def test_unclassified_error_is_retried(
        self, worker_factory, enqueue, repository, email_sender
    ):
        """Errors without a retryable flag are retried."""
        enqueue()
        email_sender.send.side_effect = RuntimeError("connection reset")

        worker_factory().process_batch()

        item = repository.get_item("q-1")
        assert item.status == QueueStatus.PENDING
        assert item.last_error == "connection reset"

    def test_missing_channel(self, worker_factory, enqueue, repository, sample_value):
        """Items for deleted channels fail under the unknown channel type."""
        enqueue(channel={"id": "ch-gone", "missing": True})

        stats = worker_factory().process_batch()

        assert stats["failed"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert "ch-gone" in item.last_error
        assert sample_value(
            "notifications_sent_total", channel_type="unknown", status="failed"
        ) == 1

    def test_unverified_channel_skipped(
        self, worker_factory, enqueue, repository, email_sender, sample_value
    ):
        """Unverified channels are failed without sending."""
        enqueue(channel={"is_verified": False})

        stats = worker_factory().process_batch()

        assert stats["skipped"] == 1
        email_sender.send.assert_not_called()
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.last_error == "channel not verified"
        assert sample_value(
            "notifications_sent_total",
            channel_type="email",
            status="skipped_unverified",
        ) == 1

    def test_disabled_channel_skipped(
        self, worker_factory, enqueue, repository, email_sender, sample_value
    ):
        """Disabled channels are failed without sending."""
        enqueue(channel={"is_enabled": False})

        worker_factory().process_batch()

        email_sender.send.assert_not_called()
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.last_error == "channel disabled"
        assert sample_value(
            "notifications_sent_total",
            channel_type="email",
            status="skipped_disabled",
        ) == 1

    def test_gating_after_enqueue_only_affects_that_channel(
        self, worker_factory, enqueue, repository, channel_factory, email_sender
    ):
        """Disabling a channel after enqueue fails its item and leaves the rest alone."""
        enqueue("q-1", channel={"id": "ch-1", "target": "keep@example.com"})
        enqueue("q-2", channel={"id": "ch-2", "target": "gone@example.com"})
        repository.save_channel(
            channel_factory(id="ch-2", target="gone@example.com", is_enabled=False)
        )

        stats = worker_factory().process_batch()

        assert stats["sent"] == 1
        assert stats["skipped"] == 1
        kept = repository.get_item("q-1")
        gated = repository.get_item("q-2")
        assert kept.status == QueueStatus.SENT
        assert gated.status == QueueStatus.FAILED
        assert gated.last_error == "channel disabled"
        assert gated.event_id == kept.event_id
        assert [call.args[0].to for call in email_sender.send.call_args_list] == [
            "keep@example.com"
        ]

    def test_render_error_fails(
        self, worker_factory, enqueue, repository, email_sender, sample_value
    ):
        """A render failure is terminal."""
        enqueue()
        broken_renderer = MagicMock()
        broken_renderer.render.side_effect = RenderError("undefined variable")

        worker_factory(renderer_override=broken_renderer).process_batch()

        email_sender.send.assert_not_called()
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert item.last_error == "undefined variable"
        assert sample_value(
            "notifications_sent_total", channel_type="email", status="failed"
        ) == 1

    def test_sender_not_configured_fails(self, worker_factory, enqueue, repository):
        """Channel types without a sender fail without retry."""
        enqueue(channel={"type": ChannelType.WEBHOOK, "target": "https://hooks.example.com/x"})

        worker_factory().process_batch()

        item = repository.get_item("q-1")
        assert item.status == QueueStatus.FAILED
        assert "webhook" in item.last_error

    def test_batch_size_respected(self, worker_factory, enqueue, repository):
        """A poll claims at most batch_size items."""
        for index in range(5):
            enqueue(item_id=f"q-{index}")

        stats = worker_factory(batch_size=3).process_batch()

        assert stats["processed"] == 3
        assert repository.get_queue_stats().pending == 2

    def test_outcomes_reconcile_with_fetched(
        self, worker_factory, enqueue, email_sender, mock_sender_factory, sample_value
    ):
        """Every fetched item lands in exactly one outcome."""
        enqueue(item_id="q-ok")
        enqueue(item_id="q-unverified", channel={"id": "ch-2", "is_verified": False})
        enqueue(item_id="q-missing", channel={"id": "ch-3", "missing": True})
        chat_sender = mock_sender_factory(
            ChannelType.CHAT_API, side_effect=RetryableSendError("429")
        )
        enqueue(
            item_id="q-retry",
            channel={"id": "ch-4", "type": ChannelType.CHAT_API, "target": "42"},
        )

        worker_factory(senders=[email_sender, chat_sender]).process_batch()

        total = sum(
            sample_value("notifications_sent_total", channel_type=ct, status=status)
            for ct in ("email", "chat_api", "webhook", "unknown")
            for status in (
                "success",
                "retry",
                "failed",
                "skipped_unverified",
                "skipped_disabled",
            )
        )
        assert sample_value("notifications_queue_fetched_total") == 4
        assert total == 4

    def test_unexpected_exception_routes_to_retry(
        self, worker_factory, enqueue, repository, sample_value
    ):
        """A crash while processing an item does not leave it claimed."""
        enqueue()
        worker = worker_factory()

        with patch.object(worker, "process_item", side_effect=RuntimeError("bug")):
            stats = worker.process_batch()

        assert stats["retried"] == 1
        item = repository.get_item("q-1")
        assert item.status == QueueStatus.PENDING
        assert item.last_error == "bug"
        assert sample_value(
            "notifications_sent_total", channel_type="unknown", status="retry"
        ) == 1

    def test_fetch_failure_returns_empty_stats(self, metrics, renderer, dispatcher_factory):
        """A failing store fetch is logged and yields zero stats."""
        repository = MagicMock()
        repository.fetch_pending.side_effect = RuntimeError("db down")
        worker = NotificationWorker(repository, dispatcher_factory(), renderer, metrics)

        assert worker.process_batch()["processed"] == 0

    def test_mark_failure_does_not_abort_batch(
        self, metrics, renderer, dispatcher_factory, queue_item_factory, channel_factory
    ):
        """Store write failures are logged and the batch continues."""
        repository = MagicMock()
        repository.fetch_pending.return_value = [
            queue_item_factory(id="q-1"),
            queue_item_factory(id="q-2"),
        ]
        repository.get_channel.return_value = channel_factory()
        repository.mark_sent.side_effect = RuntimeError("db down")
        worker = NotificationWorker(repository, dispatcher_factory(), renderer, metrics)

        stats = worker.process_batch()

        assert stats["processed"] == 2
        assert stats["sent"] == 2
        assert repository.mark_sent.call_count == 2


class TestWorkerLifecycle:
    """Tests for start/stop of the worker threads."""

    def test_start_and_stop(self, worker_factory, enqueue, repository):
        """Threads drain the queue and stop cleanly."""
        enqueue()
        worker = worker_factory(num_workers=2, poll_interval_seconds=0.01)

        worker.start()
        try:
            assert worker.is_running
            assert len(worker._threads) == 2
            deadline = time.monotonic() + 5
            while (
                repository.get_item("q-1").status != QueueStatus.SENT
                and time.monotonic() < deadline
            ):
                time.sleep(0.01)
        finally:
            worker.stop(timeout=5)

        assert repository.get_item("q-1").status == QueueStatus.SENT
        assert not worker.is_running

    def test_start_twice_is_noop(self, worker_factory):
        """Starting a running pool does not add threads."""
        worker = worker_factory(num_workers=1, poll_interval_seconds=0.01)

        worker.start()
        threads = list(worker._threads)
        worker.start()
        try:
            assert worker._threads == threads
        finally:
            worker.stop(timeout=5)

    def test_stop_without_start(self, worker_factory):
        """Stopping a pool that never started is safe."""
        worker = worker_factory()

        worker.stop()

        assert not worker.is_running
