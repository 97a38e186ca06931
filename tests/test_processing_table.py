"""
Tests for the processing table state machine.
"""

import pytest

from gemini_formula.entities import QueuedRequest, RequestStatus
from gemini_formula.errors import InvalidTransitionError
from gemini_formula.services import ProcessingTable


@pytest.fixture
def table():
    return ProcessingTable()


@pytest.fixture
def request_():
    return QueuedRequest(
        id="abc",
        prompt="Explain gravity",
        model="models/gemini-2.0-flash",
        system_prompt="",
        temperature=0.7,
    )


def test_create_queued_record(table, request_):
    assert table.create(request_, queue_position=3)

    record = table.get("abc")
    assert record.status is RequestStatus.QUEUED
    assert record.queue_position == 3
    assert record.response is None and record.error is None
    assert "abc" in table
    assert len(table) == 1


def test_create_is_idempotent(table, request_):
    """A fingerprint is only ever tracked once."""
    assert table.create(request_, queue_position=1)
    assert not table.create(request_, queue_position=2)
    assert table.get("abc").queue_position == 1


def test_success_path(table, request_):
    table.create(request_, queue_position=1)

    processing = table.mark_processing("abc")
    assert processing.status is RequestStatus.PROCESSING
    assert processing.start_processing is not None

    complete = table.mark_complete("abc", "Gravity pulls.")
    assert complete.status is RequestStatus.COMPLETE
    assert complete.response == "Gravity pulls."
    assert complete.error is None
    assert complete.end_time >= complete.start_time


def test_error_path(table, request_):
    table.create(request_, queue_position=1)
    table.mark_processing("abc")

    record = table.mark_error("abc", "quota exceeded")

    assert record.status is RequestStatus.ERROR
    assert record.error == "quota exceeded"
    assert record.response is None


def test_terminal_status_never_changes(table, request_):
    table.create(request_, queue_position=1)
    table.mark_processing("abc")
    table.mark_complete("abc", "done")

    with pytest.raises(InvalidTransitionError):
        table.mark_error("abc", "late failure")
    with pytest.raises(InvalidTransitionError):
        table.mark_processing("abc")

    assert table.get("abc").status is RequestStatus.COMPLETE


def test_status_never_regresses(table, request_):
    table.create(request_, queue_position=1)
    table.mark_processing("abc")

    with pytest.raises(InvalidTransitionError):
        table.mark_processing("abc")


def test_unknown_record(table):
    with pytest.raises(InvalidTransitionError):
        table.mark_processing("nope")


def test_records_are_snapshots(table, request_):
    """Readers hold immutable snapshots, unaffected by later transitions."""
    table.create(request_, queue_position=1)
    before = table.get("abc")

    table.mark_processing("abc")

    assert before.status is RequestStatus.QUEUED
    assert table.get("abc").status is RequestStatus.PROCESSING
