"""
Tests for request fingerprinting.
"""

import re

import pytest

from gemini_formula.services import make_fingerprint

BASE = ("Explain gravity", "models/gemini-2.0-flash", "Be brief", 0.7)


def test_fingerprint_is_deterministic():
    """Same inputs, same fingerprint."""
    assert make_fingerprint(*BASE) == make_fingerprint(*BASE)


def test_fingerprint_is_key_safe():
    """Fingerprint is a fixed-length lowercase hex string."""
    assert re.fullmatch(r"[0-9a-f]{64}", make_fingerprint(*BASE))


@pytest.mark.parametrize(
    "index,value",
    [
        (0, "Explain magnetism"),
        (1, "models/gemini-1.5-pro"),
        (2, "Be verbose"),
        (3, 0.8),
    ],
)
def test_changing_any_field_changes_fingerprint(index, value):
    """Every field participates in the fingerprint."""
    changed = list(BASE)
    changed[index] = value
    assert make_fingerprint(*changed) != make_fingerprint(*BASE)


def test_long_prompts_sharing_a_prefix_do_not_collide():
    """Prompts are hashed in full, not truncated."""
    prefix = "x" * 150
    first = make_fingerprint(prefix + "a", "models/gemini-2.0-flash", "", 0.7)
    second = make_fingerprint(prefix + "b", "models/gemini-2.0-flash", "", 0.7)
    assert first != second


def test_field_boundaries_are_unambiguous():
    """Moving text between prompt and system prompt changes the fingerprint."""
    first = make_fingerprint("ab", "m", "c", 0.7)
    second = make_fingerprint("a", "m", "bc", 0.7)
    assert first != second


def test_none_system_prompt_equals_empty():
    """A missing system prompt is the same request as an empty one."""
    assert make_fingerprint("p", "m", None, 0.7) == make_fingerprint("p", "m", "", 0.7)


def test_integer_and_float_temperature_are_equal():
    """Temperature 1 and 1.0 are the same request."""
    assert make_fingerprint("p", "m", "", 1) == make_fingerprint("p", "m", "", 1.0)
