"""
Business logic services.
"""
from mediarelay.services.fingerprint_service import FingerprintService
from mediarelay.services.rate_limit_service import RateLimitService, AdmissionDecision
from mediarelay.services.usage_service import UsageService, UploadInfo
from mediarelay.services.api_key_service import ApiKeyService, ApiKeyGenerationError
from mediarelay.services.upload_service import UploadService, UploadRequest, UploadResult

__all__ = [
    "FingerprintService",
    "RateLimitService",
    "AdmissionDecision",
    "UsageService",
    "UploadInfo",
    "ApiKeyService",
    "ApiKeyGenerationError",
    "UploadService",
    "UploadRequest",
    "UploadResult",
]
