"""
Client fingerprint derived per request. Never persisted on its own.
"""
from pydantic import BaseModel, ConfigDict


class Fingerprint(BaseModel):
    """Pseudo-identity of a client plus the signals it was derived from."""

    model_config = ConfigDict(frozen=True)

    identity: str
    ip_hash: str
    user_agent: str
    country: str
    device: str
    browser: str
