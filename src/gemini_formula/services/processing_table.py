"""In-memory processing table.

Maps request fingerprints to ProcessingRecord snapshots for the lifetime of
the process. Records are replaced, never mutated in place, and status only
moves forward: queued -> processing -> complete | error.
"""

import threading
from dataclasses import replace

from gemini_formula.entities import ProcessingRecord, QueuedRequest, RequestStatus
from gemini_formula.errors import InvalidTransitionError
from gemini_formula.models import now_ms


class ProcessingTable:
    """Thread-safe map of fingerprint to processing record.

    The request queue is the only writer of status transitions; the entry
    point and the stats surface only read.
    """

    def __init__(self) -> None:
        self._records: dict[str, ProcessingRecord] = {}
        self._lock = threading.RLock()

    def create(self, request: QueuedRequest, queue_position: int) -> bool:
        """Create a queued record for a request.

        Args:
            request: The request being enqueued
            queue_position: 1-based position in the pending list

        Returns:
            True if created, False if the fingerprint already has a record
        """
        with self._lock:
            if request.id in self._records:
                return False
            self._records[request.id] = ProcessingRecord(
                id=request.id,
                status=RequestStatus.QUEUED,
                prompt=request.prompt,
                model=request.model,
                system_prompt=request.system_prompt,
                temperature=request.temperature,
                start_time=now_ms(),
                queue_position=queue_position,
            )
            return True

    def get(self, request_id: str) -> ProcessingRecord | None:
        with self._lock:
            return self._records.get(request_id)

    def records(self) -> list[ProcessingRecord]:
        """Return a snapshot of all records in insertion order."""
        with self._lock:
            return list(self._records.values())

    def mark_processing(self, request_id: str) -> ProcessingRecord:
        return self._transition(
            request_id,
            RequestStatus.PROCESSING,
            start_processing=now_ms(),
        )

    def mark_complete(self, request_id: str, response: str) -> ProcessingRecord:
        return self._transition(
            request_id,
            RequestStatus.COMPLETE,
            response=response,
            end_time=now_ms(),
        )

    def mark_error(self, request_id: str, message: str) -> ProcessingRecord:
        return self._transition(
            request_id,
            RequestStatus.ERROR,
            error=message,
            end_time=now_ms(),
        )

    def _transition(self, request_id: str, status: RequestStatus, **changes) -> ProcessingRecord:
        with self._lock:
            current = self._records.get(request_id)
            if current is None:
                raise InvalidTransitionError(f"No processing record for {request_id}")
            if current.status.is_terminal or status.rank <= current.status.rank:
                raise InvalidTransitionError(
                    f"Cannot move {request_id} from {current.status.value} to {status.value}"
                )
            updated = replace(current, status=status, **changes)
            self._records[request_id] = updated
            return updated

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
