"""
signature.py — Frontend Request Signature Verification

The storefront signs every checkout submission with a secret shared with this
service:

    X-RG-Timestamp: <milliseconds since epoch>
    X-RG-Signature: hex(HMAC-SHA256(secret, "<timestamp>.<raw body>"))

Verification is a pure check. It never retries and never grants partial trust.
The raw body must be the exact bytes received on the wire.
"""

import hashlib
import hmac
import re
import time
from typing import NamedTuple, Optional, Union

TIMESTAMP_HEADER = "X-RG-Timestamp"
SIGNATURE_HEADER = "X-RG-Signature"

MISSING_HEADERS = "missing_headers"
BAD_TIMESTAMP = "bad_timestamp"
TIMESTAMP_SKEW = "timestamp_skew"
BAD_SIGNATURE = "bad_signature"

_TIMESTAMP_RE = re.compile(r"[0-9]{1,16}")


class Verification(NamedTuple):
    ok: bool
    reason: Optional[str] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def compute_signature(secret: Union[str, bytes], timestamp: str, raw_body: bytes) -> str:
    """Returns the lowercase hex HMAC-SHA256 of `"{timestamp}.{raw_body}"`."""
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    message = timestamp.encode("ascii") + b"." + raw_body
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def verify(secret: Union[str, bytes], timestamp: Optional[str], raw_body: bytes,
           signature: Optional[str], max_skew_ms: int,
           current_ms: Optional[int] = None) -> Verification:
    """
    Checks a signed request.

    Args:
        secret: Shared signing secret.
        timestamp: Value of the timestamp header, as received.
        raw_body: Exact request body bytes.
        signature: Value of the signature header, as received.
        max_skew_ms: Largest accepted distance between `timestamp` and now.
        current_ms: Server time in milliseconds, defaults to the wall clock.

    Returns:
        Verification: `ok=True`, or `ok=False` with one of the reason codes
        `missing_headers`, `bad_timestamp`, `timestamp_skew`, `bad_signature`.
    """
    if not timestamp or not signature:
        return Verification(False, MISSING_HEADERS)

    if not _TIMESTAMP_RE.fullmatch(timestamp):
        return Verification(False, BAD_TIMESTAMP)

    if current_ms is None:
        current_ms = now_ms()
    if abs(current_ms - int(timestamp)) > max_skew_ms:
        return Verification(False, TIMESTAMP_SKEW)

    expected = compute_signature(secret, timestamp, raw_body)
    try:
        provided = signature.encode("ascii")
    except UnicodeEncodeError:
        return Verification(False, BAD_SIGNATURE)

    # compare_digest runs in time independent of where the first difference is
    if not hmac.compare_digest(provided, expected.encode("ascii")):
        return Verification(False, BAD_SIGNATURE)

    return Verification(True)
