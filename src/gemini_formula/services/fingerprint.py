"""Request fingerprinting.

A fingerprint identifies the semantic inputs of a generation request. It
keys both the in-process processing table and the external response cache,
so it must be deterministic and safe as a Redis key.
"""

import json
from hashlib import sha256


def make_fingerprint(
    prompt: str,
    model: str,
    system_prompt: str | None,
    temperature: float,
) -> str:
    """Build the fingerprint of a generation request.

    The full, untruncated inputs are hashed, so two prompts sharing a long
    prefix never collide.

    Args:
        prompt: The user prompt
        model: Resolved model identifier
        system_prompt: System instruction; None is the same as ""
        temperature: Sampling temperature; 1 and 1.0 are the same request

    Returns:
        64-character lowercase hex digest
    """
    canonical = json.dumps(
        [prompt, model, system_prompt or "", float(temperature)],
        ensure_ascii=True,
        separators=(",", ":"),
    )
    return sha256(canonical.encode("utf-8")).hexdigest()
