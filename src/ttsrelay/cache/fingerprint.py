"""Deterministic cache key derivation from synthesis parameters."""

import hashlib
import json

from ..tts.models import SynthesisParameters

FINGERPRINT_LENGTH = 64


def fingerprint(params: SynthesisParameters) -> str:
    """Generate the cache fingerprint for a set of synthesis parameters.

    Every field that affects the produced audio goes into the hash input:
    text, voice_id, sample_rate, codec and emotion. The fields are
    serialized as a compact JSON array so a delimiter character inside the
    text can never make two different tuples serialize the same way.

    Args:
        params: Validated synthesis parameters

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    payload = json.dumps(
        [
            params.text,
            params.voice_id,
            params.sample_rate,
            params.codec.value,
            params.emotion,
        ],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
