"""Queued request domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QueuedRequest:
    """A fingerprinted generation request waiting in the queue."""

    id: str
    prompt: str
    model: str
    system_prompt: str
    temperature: float
