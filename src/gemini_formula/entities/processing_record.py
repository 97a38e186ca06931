"""Processing record domain entity."""

from dataclasses import dataclass
from enum import Enum


class RequestStatus(str, Enum):
    """Lifecycle of one fingerprinted request."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def rank(self) -> int:
        """Position in the lifecycle; both terminal statuses share the last rank."""
        return _RANKS[self]

    @property
    def is_terminal(self) -> bool:
        """Whether the status can no longer change."""
        return self in (RequestStatus.COMPLETE, RequestStatus.ERROR)


_RANKS = {
    RequestStatus.QUEUED: 0,
    RequestStatus.PROCESSING: 1,
    RequestStatus.COMPLETE: 2,
    RequestStatus.ERROR: 2,
}


@dataclass(frozen=True)
class ProcessingRecord:
    """Status of a request inside the current process.

    Attributes:
        id: Request fingerprint
        status: Current lifecycle status
        prompt: The user prompt
        model: Resolved model identifier
        system_prompt: System instruction, "" for none
        temperature: Sampling temperature
        start_time: Enqueue time (epoch ms)
        queue_position: 1-based position at enqueue time
        start_processing: Time the upstream call started (epoch ms)
        end_time: Time a terminal status was reached (epoch ms)
        response: Generated text, set only when complete
        error: Error message, set only on error
    """

    id: str
    status: RequestStatus
    prompt: str
    model: str
    system_prompt: str
    temperature: float
    start_time: int
    queue_position: int
    start_processing: int | None = None
    end_time: int | None = None
    response: str | None = None
    error: str | None = None
