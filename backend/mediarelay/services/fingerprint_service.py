"""
Client fingerprinting.

Derives a stable pseudo-identity from request headers without storing raw
IPs. Identity is SHA-256 over ``ip|user-agent|country|device|browser``;
ip_hash is SHA-256 of the IP alone, truncated for compact storage (it only
keeps the raw address out of the store, it does not resist targeted
de-anonymization). Clients sharing all five signals share an identity.
"""
import hashlib
from typing import Mapping

from mediarelay.models.fingerprint import Fingerprint

IP_HASH_LENGTH = 24

UNKNOWN = "unknown"
UNKNOWN_COUNTRY = "??"

# Header names as set by the edge proxy / browser client hints
IP_HEADER = "cf-connecting-ip"
USER_AGENT_HEADER = "user-agent"
COUNTRY_HEADER = "cf-ipcountry"
DEVICE_HEADER = "sec-ch-ua-model"
BROWSER_HEADER = "sec-ch-ua"


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class FingerprintService:
    """Pure, deterministic fingerprinting of request headers."""

    @staticmethod
    def fingerprint(headers: Mapping[str, str]) -> Fingerprint:
        """
        Compute the fingerprint for a request.

        Args:
            headers: Request headers (any absent header uses a placeholder)

        Returns:
            Fingerprint with identity and ip_hash
        """
        lowered = {name.lower(): value for name, value in headers.items()}

        ip = lowered.get(IP_HEADER) or UNKNOWN
        user_agent = lowered.get(USER_AGENT_HEADER) or UNKNOWN
        country = lowered.get(COUNTRY_HEADER) or UNKNOWN_COUNTRY
        device = lowered.get(DEVICE_HEADER) or UNKNOWN
        browser = lowered.get(BROWSER_HEADER) or UNKNOWN

        identity_source = "|".join([ip, user_agent, country, device, browser])

        return Fingerprint(
            identity=_sha256(identity_source),
            ip_hash=_sha256(ip)[:IP_HASH_LENGTH],
            user_agent=user_agent,
            country=country,
            device=device,
            browser=browser,
        )
