"""
Source verification: fetch gate, URL sanity, archive/proxy resolution, batch coordination.
"""

from .archive import ArchiveResolver
from .batch import BatchVerificationCoordinator, grounding_candidates, merge_sources, rank_sources
from .fetch_gate import FetchError, FetchGate, FetchNetworkError, FetchResponse, FetchTimeout
from .source_verifier import SourceVerifier

__all__ = [
    "ArchiveResolver",
    "BatchVerificationCoordinator",
    "FetchError",
    "FetchGate",
    "FetchNetworkError",
    "FetchResponse",
    "FetchTimeout",
    "SourceVerifier",
    "grounding_candidates",
    "merge_sources",
    "rank_sources",
]
