"""
CertGuard Fingerprints

Submissions and rule sets are fingerprinted as SHA-256 over a canonical JSON
encoding: sorted keys, compact separators, UTF-8 without ASCII escaping.
Fingerprints are written as "sha256:<lowercase hex>".
"""

import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Union


def _encode_extra(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot canonicalize type: {type(value).__name__}")


def canonicalize(obj: Any) -> bytes:
    """
    Canonical JSON bytes for obj.

    NaN and infinities are rejected, as are types JSON cannot represent
    (other than enums, dates and sets).
    """
    try:
        text = json.dumps(
            obj,
            sort_keys=True,
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False,
            default=_encode_extra,
        )
    except TypeError as e:
        raise ValueError(str(e))
    return text.encode('utf-8')


def canonicalize_str(obj: Any) -> str:
    return canonicalize(obj).decode('utf-8')


def sha256_hash(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        data = data.encode('utf-8')
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def submission_hash(submission: dict) -> str:
    """Fingerprint of a serialized submission (without its certificate id)."""
    return sha256_hash(canonicalize(submission))


def ruleset_hash(ruleset: dict) -> str:
    """Fingerprint of a serialized rule set, reported with every rules listing."""
    return sha256_hash(canonicalize(ruleset))
