"""HMAC request signing shared by the SIS gateway and the inbound endpoints.

Both directions sign ``body + timestamp`` with HMAC-SHA256 and send the hex
digest in ``x-signature``; the timestamp is unix milliseconds as a string.
"""

from __future__ import annotations

import hashlib
import hmac
import time


def current_timestamp() -> str:
    return str(int(time.time() * 1000))


def sign(secret: str, body: str, timestamp: str) -> str:
    message = (body + timestamp).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signed_headers(*, secret: str, api_key: str, body: str, timestamp: str | None = None) -> dict[str, str]:
    timestamp = timestamp or current_timestamp()
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
        "x-timestamp": timestamp,
        "x-signature": sign(secret, body, timestamp),
    }


def timestamp_within_window(timestamp: str, max_skew_seconds: int, now_ms: int | None = None) -> bool:
    try:
        value = int(timestamp)
    except (TypeError, ValueError):
        return False
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return abs(now_ms - value) <= max_skew_seconds * 1000


def verify_signature(
    *,
    secret: str,
    body: str,
    timestamp: str,
    signature: str,
    max_skew_seconds: int,
    now_ms: int | None = None,
) -> bool:
    if not secret or not signature:
        return False
    if not timestamp_within_window(timestamp, max_skew_seconds, now_ms):
        return False
    expected = sign(secret, body, timestamp)
    return hmac.compare_digest(expected, signature)
