"""Supplemental provider lookups used to enrich flattened records."""

from .fetcher import SupplementalDataFetcher
from .steps import ENRICHMENT_STEPS, LAYERS_KEY, EnrichmentStep, fill_guid, run_enrichment

__all__ = [
    "ENRICHMENT_STEPS",
    "EnrichmentStep",
    "LAYERS_KEY",
    "SupplementalDataFetcher",
    "fill_guid",
    "run_enrichment",
]
