"""Rate-limited batch queue.

Pending requests are released in batches sized to the tier's
requests-per-minute quota. Each request runs inside retry_with_backoff;
its processing record moves to complete (and the response is cached) or to
error. Between batches the drain sleeps for the tier's batch delay.

Draining runs on a background worker so that enqueueing returns at once:
the caller gets a provisional status and polls by calling again. At most
one drain is active at a time.
"""

import logging
import math
import threading
import time
from collections.abc import Callable

import redis

from gemini_formula.config import RateLimitProfile
from gemini_formula.entities import ProcessingRecord, QueuedRequest
from gemini_formula.errors import EmptyResponseError
from gemini_formula.protocols import TextGenerator
from gemini_formula.services.processing_table import ProcessingTable
from gemini_formula.services.response_cache import ResponseCache
from gemini_formula.services.retry import retry_with_backoff

logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[], None]], None]


def start_worker_thread(target: Callable[[], None]) -> None:
    """Run ``target`` on a daemon thread."""
    threading.Thread(target=target, name="gemini-queue-drain", daemon=True).start()


class RequestQueue:
    """FIFO queue that drains into the text generator under a rate limit.

    Example:
        ```python
        queue = RequestQueue(
            table=table,
            cache=cache,
            generator=client,
            rate_limit=lambda: state.rate_limit,
            on_finished=state.add_to_history,
        )
        position = queue.add(request)
        ```
    """

    def __init__(
        self,
        table: ProcessingTable,
        cache: ResponseCache,
        generator: TextGenerator,
        rate_limit: Callable[[], RateLimitProfile],
        on_finished: Callable[[ProcessingRecord], object] | None = None,
        scheduler: Scheduler = start_worker_thread,
        sleep: Callable[[float], None] = time.sleep,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
        retry_max_delay: float | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            table: Processing table receiving status transitions.
            cache: Response cache populated on success.
            generator: Upstream text generator.
            rate_limit: Returns the current tier profile; read once per batch.
            on_finished: Called with every record that reaches a terminal status.
            scheduler: Starts a drain; defaults to a daemon thread.
            sleep: Blocking sleep used between batches and between retries.
            retry_attempts: Attempts per request. Defaults to settings.
            retry_base_delay: First retry backoff in seconds. Defaults to settings.
            retry_max_delay: Retry backoff cap in seconds. Defaults to settings.
        """
        self._table = table
        self._cache = cache
        self._generator = generator
        self._rate_limit = rate_limit
        self._on_finished = on_finished
        self._scheduler = scheduler
        self._sleep = sleep
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

        self._pending: list[QueuedRequest] = []
        self._draining = False
        self._lock = threading.Lock()

    def add(self, request: QueuedRequest) -> int:
        """Enqueue a request and start a drain if none is active.

        A fingerprint that already has a processing record is not queued
        again.

        Args:
            request: The request to enqueue

        Returns:
            1-based queue position (0 if the request was already known)
        """
        with self._lock:
            position = len(self._pending) + 1
            if not self._table.create(request, queue_position=position):
                return 0
            self._pending.append(request)
            start_drain = not self._draining
            if start_drain:
                self._draining = True

        logger.debug("Queued request %s at position %d", request.id[:12], position)
        if start_drain:
            try:
                self._scheduler(self.drain)
            except Exception:
                with self._lock:
                    self._draining = False
                raise
        return position

    def drain(self) -> None:
        """Process batches until the pending list is empty."""
        try:
            self._drain_batches()
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    def _drain_batches(self) -> None:
        while True:
            profile = self._rate_limit()
            with self._lock:
                batch = self._pending[: profile.requests_per_minute]
                del self._pending[: len(batch)]
                if not batch:
                    self._draining = False
                    return

            logger.info("Draining batch of %d request(s)", len(batch))
            for request in batch:
                self._process(request, profile)

            with self._lock:
                if not self._pending:
                    self._draining = False
                    return
            self._sleep(profile.batch_delay_seconds)

    def _process(self, request: QueuedRequest, profile: RateLimitProfile) -> None:
        self._table.mark_processing(request.id)
        try:
            response = retry_with_backoff(
                lambda: self._invoke(request, profile.timeout_seconds),
                max_attempts=self._retry_attempts,
                base_delay=self._retry_base_delay,
                max_delay=self._retry_max_delay,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.warning("Request %s failed: %s", request.id[:12], e)
            record = self._table.mark_error(request.id, str(e) or type(e).__name__)
        else:
            record = self._table.mark_complete(request.id, response)
            try:
                self._cache.put(request.id, response)
            except redis.RedisError as e:
                logger.error("Failed to cache response for %s: %s", request.id[:12], e)

        if self._on_finished is not None:
            try:
                self._on_finished(record)
            except Exception:
                logger.exception("Failed to record history for %s", request.id[:12])

    def _invoke(self, request: QueuedRequest, timeout: float) -> str:
        response = self._generator.generate(
            request.prompt,
            request.model,
            request.system_prompt,
            request.temperature,
            timeout=timeout,
        )
        if not response:
            raise EmptyResponseError()
        return response

    def estimated_wait(self, position: int) -> float:
        """Upper bound on the seconds until a request at ``position`` is released.

        An idle queue starts the first batch at once, but a request added while
        a drain sleeps between batches waits up to one full batch delay, so
        every batch ahead of it, its own included, counts one delay.
        """
        profile = self._rate_limit()
        return math.ceil(position / profile.requests_per_minute) * profile.batch_delay_seconds

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def is_draining(self) -> bool:
        with self._lock:
            return self._draining
