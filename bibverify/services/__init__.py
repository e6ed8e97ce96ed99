"""Service layer for citation verification."""

from .batch_verification_service import BatchVerificationService
from .cross_validation_service import CrossValidationService
from .duplicate_detection_service import DuplicateDetectionService
from .registry_lookup_service import RegistryLookupService

__all__ = [
    "BatchVerificationService",
    "CrossValidationService",
    "DuplicateDetectionService",
    "RegistryLookupService",
]
