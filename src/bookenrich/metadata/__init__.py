# ABOUTME: Metadata package: record types, the provider contract, ISBN errors and HTTP errors.
# ABOUTME: Adapters, matcher and merge live in submodules and are imported from there.

from bookenrich.metadata.http import MetadataFetchError
from bookenrich.metadata.isbn import InvalidIsbnError
from bookenrich.metadata.provider import MetadataProvider
from bookenrich.metadata.types import (
    BookRecord,
    CandidateRecord,
    CoverCandidate,
    CoverType,
    MetadataSources,
    Provider,
    SizeClass,
    SourceFields,
)

__all__ = [
    "BookRecord",
    "CandidateRecord",
    "CoverCandidate",
    "CoverType",
    "InvalidIsbnError",
    "MetadataFetchError",
    "MetadataProvider",
    "MetadataSources",
    "Provider",
    "SizeClass",
    "SourceFields",
]
