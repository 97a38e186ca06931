"""
Tests for the rate-limited batch queue.
"""

import pytest
from doubles import DeferredScheduler, FakeGenerator, transient

from gemini_formula.config import RateLimitProfile
from gemini_formula.entities import QueuedRequest, RequestStatus
from gemini_formula.errors import GeminiAPIError
from gemini_formula.services import ProcessingTable, RequestQueue, ResponseCache

LIMIT = 4
PROFILE = RateLimitProfile(
    requests_per_minute=LIMIT,
    requests_per_day=100,
    timeout_seconds=30.0,
    batch_delay_seconds=60.0,
)


def make_request(prompt: str) -> QueuedRequest:
    return QueuedRequest(
        id=f"id-{prompt}",
        prompt=prompt,
        model="models/gemini-2.0-flash",
        system_prompt="",
        temperature=0.7,
    )


@pytest.fixture
def timeline():
    """Shared log of upstream calls and sleeps, in order."""
    return []


@pytest.fixture
def recording_generator(timeline):
    class Recording(FakeGenerator):
        def generate(self, prompt, model, system_prompt, temperature, timeout=None):
            timeline.append(prompt)
            return super().generate(prompt, model, system_prompt, temperature, timeout)

    return Recording()


@pytest.fixture
def finished():
    return []


@pytest.fixture
def make_queue(cache_store, timeline, finished):
    def _make(generator, scheduler=None, profile=PROFILE):
        table = ProcessingTable()
        cache = ResponseCache(store=cache_store, chunk_size=1000)
        queue = RequestQueue(
            table=table,
            cache=cache,
            generator=generator,
            rate_limit=lambda: profile,
            on_finished=finished.append,
            scheduler=scheduler or DeferredScheduler(),
            sleep=lambda seconds: timeline.append(("sleep", seconds)),
            retry_attempts=3,
            retry_base_delay=1.0,
            retry_max_delay=10.0,
        )
        return queue, table, cache

    return _make


def split_batches(timeline):
    batches = [[]]
    for item in timeline:
        if isinstance(item, tuple):
            batches.append([])
        else:
            batches[-1].append(item)
    return batches


def test_add_creates_queued_record_and_schedules_drain(make_queue, recording_generator):
    scheduler = DeferredScheduler()
    queue, table, _ = make_queue(recording_generator, scheduler)

    position = queue.add(make_request("a"))

    assert position == 1
    assert table.get("id-a").status is RequestStatus.QUEUED
    assert queue.pending_count == 1
    assert queue.is_draining
    assert len(scheduler.pending) == 1
    assert recording_generator.calls == []


def test_batches_follow_rate_limit_in_fifo_order(make_queue, recording_generator, timeline):
    """2 * limit + 3 requests drain as [limit, limit, 3]."""
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)
    prompts = [f"p{i}" for i in range(LIMIT * 2 + 3)]

    for prompt in prompts:
        queue.add(make_request(prompt))
    scheduler.run_all()

    batches = split_batches(timeline)
    assert [len(b) for b in batches] == [LIMIT, LIMIT, 3]
    assert [p for b in batches for p in b] == prompts
    assert [item for item in timeline if isinstance(item, tuple)] == [("sleep", 60.0), ("sleep", 60.0)]
    assert not queue.is_draining
    assert queue.pending_count == 0


def test_only_one_drain_is_scheduled(make_queue, recording_generator):
    """Adds while a drain is active join the pending list."""
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)

    for prompt in ("a", "b", "c"):
        queue.add(make_request(prompt))

    assert len(scheduler.pending) == 1
    scheduler.run_all()
    assert recording_generator.prompts == ["a", "b", "c"]


def test_new_drain_after_previous_finished(make_queue, recording_generator):
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()
    queue.add(make_request("b"))

    assert len(scheduler.pending) == 1
    scheduler.run_all()
    assert recording_generator.prompts == ["a", "b"]


def test_duplicate_fingerprint_is_not_queued(make_queue, recording_generator):
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)

    assert queue.add(make_request("a")) == 1
    assert queue.add(make_request("a")) == 0
    scheduler.run_all()

    assert recording_generator.prompts == ["a"]


def test_success_completes_record_and_fills_cache(make_queue, recording_generator, finished):
    scheduler = DeferredScheduler()
    queue, table, cache = make_queue(recording_generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()

    record = table.get("id-a")
    assert record.status is RequestStatus.COMPLETE
    assert record.response == "generated: a"
    assert cache.get("id-a") == "generated: a"
    assert [r.id for r in finished] == ["id-a"]


def test_upstream_call_uses_tier_timeout(make_queue, recording_generator):
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()

    assert recording_generator.calls[0][4] == 30.0


def test_failure_does_not_abort_batch(make_queue, timeline, finished):
    generator = FakeGenerator(outcomes={"b": [GeminiAPIError("bad request", code=400)]})
    scheduler = DeferredScheduler()
    queue, table, cache = make_queue(generator, scheduler)

    for prompt in ("a", "b", "c"):
        queue.add(make_request(prompt))
    scheduler.run_all()

    assert table.get("id-a").status is RequestStatus.COMPLETE
    assert table.get("id-b").status is RequestStatus.ERROR
    assert table.get("id-b").error == "bad request"
    assert table.get("id-c").status is RequestStatus.COMPLETE
    assert cache.get("id-b") is None
    assert [r.status for r in finished] == [
        RequestStatus.COMPLETE,
        RequestStatus.ERROR,
        RequestStatus.COMPLETE,
    ]


def test_transient_failure_is_retried(make_queue, timeline):
    generator = FakeGenerator(outcomes={"a": [transient(503), "recovered"]})
    scheduler = DeferredScheduler()
    queue, table, _ = make_queue(generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()

    assert len(generator.calls) == 2
    assert table.get("id-a").response == "recovered"
    assert ("sleep", 1.0) in timeline


def test_exhausted_retries_end_in_error(make_queue):
    generator = FakeGenerator(outcomes={"a": [transient(429), transient(503), transient(500)]})
    scheduler = DeferredScheduler()
    queue, table, _ = make_queue(generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()

    assert len(generator.calls) == 3
    record = table.get("id-a")
    assert record.status is RequestStatus.ERROR
    assert "HTTP 500" in record.error


def test_empty_response_is_an_error(make_queue):
    generator = FakeGenerator(outcomes={"a": [""]})
    scheduler = DeferredScheduler()
    queue, table, _ = make_queue(generator, scheduler)

    queue.add(make_request("a"))
    scheduler.run_all()

    assert len(generator.calls) == 1
    assert table.get("id-a").error == "Empty response from API"


def test_status_sequence_is_monotonic(make_queue, cache_store):
    """Observed statuses are always queued, processing, then one terminal status."""
    observed = []
    scheduler = DeferredScheduler()

    class Observing(FakeGenerator):
        def generate(self, prompt, model, system_prompt, temperature, timeout=None):
            observed.append(table.get(f"id-{prompt}").status)
            return super().generate(prompt, model, system_prompt, temperature, timeout)

    queue, table, _ = make_queue(Observing(), scheduler)
    queue.add(make_request("a"))
    observed.append(table.get("id-a").status)
    scheduler.run_all()
    observed.append(table.get("id-a").status)

    assert observed == [RequestStatus.QUEUED, RequestStatus.PROCESSING, RequestStatus.COMPLETE]


def test_estimated_wait(make_queue, recording_generator):
    queue, _, _ = make_queue(recording_generator)

    assert queue.estimated_wait(1) == 60.0
    assert queue.estimated_wait(LIMIT) == 60.0
    assert queue.estimated_wait(LIMIT + 1) == 120.0


def test_scheduler_failure_releases_drain_flag(make_queue, recording_generator):
    def broken(target):
        raise RuntimeError("no threads")

    queue, _, _ = make_queue(recording_generator, broken)

    with pytest.raises(RuntimeError):
        queue.add(make_request("a"))
    assert not queue.is_draining


def test_estimated_wait_bounds_actual_wait(make_queue, recording_generator, timeline):
    """The estimate never undercounts the pauses a request waits through."""
    scheduler = DeferredScheduler()
    queue, _, _ = make_queue(recording_generator, scheduler)
    prompts = [f"p{i}" for i in range(LIMIT * 2 + 1)]
    estimates = {}

    for position, prompt in enumerate(prompts, start=1):
        queue.add(make_request(prompt))
        estimates[prompt] = queue.estimated_wait(position)
    scheduler.run_all()

    waited = 0.0
    for item in timeline:
        if isinstance(item, tuple):
            waited += item[1]
        else:
            assert waited <= estimates[item]
            assert estimates[item] - waited == PROFILE.batch_delay_seconds
