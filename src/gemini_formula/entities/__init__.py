"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services. They are
NOT persisted and NOT used for API contracts - use models for the durable
snapshot and DTOs from the dto package for HTTP.
"""

from .processing_record import ProcessingRecord, RequestStatus
from .queued_request import QueuedRequest

__all__ = ["ProcessingRecord", "QueuedRequest", "RequestStatus"]
