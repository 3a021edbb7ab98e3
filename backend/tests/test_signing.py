import hashlib
import hmac

from hrms.core.signing import sign, signed_headers, timestamp_within_window, verify_signature


def test_sign_is_hmac_sha256_of_body_then_timestamp():
    expected = hmac.new(b"secret", b'{"a":1}1700000000000', hashlib.sha256).hexdigest()
    assert sign("secret", '{"a":1}', "1700000000000") == expected


def test_signed_headers_round_trip():
    headers = signed_headers(secret="secret", api_key="key", body="{}", timestamp="1700000000000")

    assert headers["Authorization"] == "Bearer key"
    assert verify_signature(
        secret="secret",
        body="{}",
        timestamp=headers["x-timestamp"],
        signature=headers["x-signature"],
        max_skew_seconds=300,
        now_ms=1700000000000 + 299_000,
    )


def test_verify_rejects_tampered_body_wrong_secret_and_stale_timestamp():
    signature = sign("secret", "{}", "1700000000000")
    common = {"timestamp": "1700000000000", "max_skew_seconds": 300, "now_ms": 1700000000000}

    assert not verify_signature(secret="secret", body='{"x":1}', signature=signature, **common)
    assert not verify_signature(secret="other", body="{}", signature=signature, **common)
    assert not verify_signature(secret="", body="{}", signature=signature, **common)
    assert not verify_signature(
        secret="secret",
        body="{}",
        timestamp="1700000000000",
        signature=signature,
        max_skew_seconds=300,
        now_ms=1700000000000 + 301_000,
    )


def test_timestamp_window_rejects_garbage():
    assert not timestamp_within_window("yesterday", 300)
    assert not timestamp_within_window(None, 300)
    assert timestamp_within_window("1000", 1, now_ms=1500)
