"""Storage adapters for Questionnaire Bridge.

This module contains storage adapters that implement the RecordStoragePort
interface for fetching and saving directory records.
"""

from src.adapters.storage.fhir_rest_adapter import FHIRRestAdapter

__all__ = ["FHIRRestAdapter"]
