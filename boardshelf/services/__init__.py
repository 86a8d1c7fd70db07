"""Service layer: parsing, derived views, enrichment and remote access."""

from .aggregation import summarize, summarize_challenges
from .collection_client import CollectionClient
from .collection_parser import parse_collection_document, parse_enrichment_document
from .collection_view import CollectionSession, derive_view
from .config import ConfigurationService, ValidationResult
from .enrichment import EnrichmentFetcher, EnrichmentState
from .errors import (
    ApiError,
    AppError,
    CollectionParseError,
    ConfigurationError,
    EmptyCollectionError,
    EnrichmentBatchError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    MalformedDocumentError,
    TransportError,
    UserFriendlyError,
    ValidationError,
    get_error_service,
    handle_error,
)
from .filtering import filter_records
from .http_client import HttpClientService
from .sorting import sort_records

__all__ = [
    "ApiError",
    "AppError",
    "CollectionClient",
    "CollectionParseError",
    "CollectionSession",
    "ConfigurationError",
    "ConfigurationService",
    "EmptyCollectionError",
    "EnrichmentBatchError",
    "EnrichmentFetcher",
    "EnrichmentState",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "HttpClientService",
    "MalformedDocumentError",
    "TransportError",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "derive_view",
    "filter_records",
    "get_error_service",
    "handle_error",
    "parse_collection_document",
    "parse_enrichment_document",
    "sort_records",
    "summarize",
    "summarize_challenges",
]
