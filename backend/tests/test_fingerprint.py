"""
Tests for request fingerprinting.
"""
import hashlib

import pytest

from mediarelay.services.fingerprint_service import FingerprintService

BASE_HEADERS = {
    "CF-Connecting-IP": "203.0.113.7",
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64)",
    "CF-IPCountry": "DE",
    "Sec-CH-UA-Model": "Pixel 8",
    "Sec-CH-UA": '"Chromium";v="124"',
}


class TestFingerprintService:
    """Tests for FingerprintService."""

    def test_identity_is_deterministic(self):
        """Test identical headers give identical fingerprints."""
        first = FingerprintService.fingerprint(BASE_HEADERS)
        second = FingerprintService.fingerprint(dict(BASE_HEADERS))
        assert first == second

    def test_identity_is_sha256_of_joined_signals(self):
        """Test identity hashes ip|ua|country|device|browser."""
        fp = FingerprintService.fingerprint(BASE_HEADERS)
        source = "|".join([
            "203.0.113.7",
            "Mozilla/5.0 (X11; Linux x86_64)",
            "DE",
            "Pixel 8",
            '"Chromium";v="124"',
        ])
        assert fp.identity == hashlib.sha256(source.encode()).hexdigest()

    @pytest.mark.parametrize("header", list(BASE_HEADERS))
    def test_identity_changes_with_any_header(self, header):
        """Test changing any single signal changes the identity."""
        changed = dict(BASE_HEADERS)
        changed[header] = changed[header] + "-other"
        assert (
            FingerprintService.fingerprint(changed).identity
            != FingerprintService.fingerprint(BASE_HEADERS).identity
        )

    def test_missing_headers_use_placeholders(self):
        """Test an empty header set still fingerprints deterministically."""
        fp = FingerprintService.fingerprint({})
        assert fp.user_agent == "unknown"
        assert fp.country == "??"
        assert fp.device == "unknown"
        assert fp.browser == "unknown"
        expected = hashlib.sha256(b"unknown|unknown|??|unknown|unknown").hexdigest()
        assert fp.identity == expected

    def test_ip_hash_is_truncated_and_independent(self):
        """Test ip_hash covers the IP alone and is 24 chars."""
        fp = FingerprintService.fingerprint(BASE_HEADERS)
        assert len(fp.ip_hash) == 24
        assert fp.ip_hash == hashlib.sha256(b"203.0.113.7").hexdigest()[:24]
        assert "203.0.113.7" not in fp.model_dump_json()

        other_ua = dict(BASE_HEADERS, **{"User-Agent": "curl/8"})
        assert FingerprintService.fingerprint(other_ua).ip_hash == fp.ip_hash

    def test_header_names_are_case_insensitive(self):
        """Test lowercase header names give the same identity."""
        lowered = {k.lower(): v for k, v in BASE_HEADERS.items()}
        assert (
            FingerprintService.fingerprint(lowered).identity
            == FingerprintService.fingerprint(BASE_HEADERS).identity
        )
