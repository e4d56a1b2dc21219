"""
Tests for webhook HMAC signatures.
"""

from payments.webhooks.signatures import compute_signature, verify_signature

SECRET = "whsec"
BODY = b'{"custom_order_id": "ORD-1", "status": "SUCCESS"}'


class TestVerifySignature:
    def test_valid_hex_digest(self):
        assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET)

    def test_prefixed_and_uppercase_digest(self):
        header = "SHA256=" + compute_signature(BODY, SECRET).upper()
        assert verify_signature(BODY, header, SECRET)

    def test_tampered_body(self):
        header = compute_signature(BODY, SECRET)
        assert not verify_signature(BODY + b" ", header, SECRET)

    def test_wrong_secret(self):
        assert not verify_signature(BODY, compute_signature(BODY, "other"), SECRET)

    def test_missing_header(self):
        assert not verify_signature(BODY, None, SECRET)
        assert not verify_signature(BODY, "", SECRET)

    def test_unset_secret_never_verifies(self):
        assert not verify_signature(BODY, compute_signature(BODY, ""), "")

    def test_non_ascii_header(self):
        assert not verify_signature(BODY, "sha256=é" * 8, SECRET)
