"""
Board Coordinator - Engine Package

Provider-facing infrastructure: error taxonomy, retry, logging,
configuration, response extraction and content providers.

Light imports only; the langchain-backed provider lives in
board_engine.providers and is imported on demand.
"""

from board_engine.errors import (
    ErrorClass, GenerationError, TransientProviderError, ValidationError,
    MalformedResponseError, OfflineError, ProviderUnavailableError,
    StructureError, classify_error,
)
from board_engine.types import GenerationScope, ScopeKind, GeneratedCell, GeneratedSection
from board_engine.retry import RetryPolicy, RetryResult, RetryingRequester, get_retry_policy
from board_engine.logging import LoggingSink, NullSink, configure_logging, get_logger
