"""Shared utilities for the ministry Function app."""

from .logging_utils import get_json_logger, log_exception
from .config import ConfigurationError, Settings, load_settings
from .tokens import AuthError, TokenCodec
from .store import ContentStore, ContentStoreError, MemoryContentStore, BlobContentStore
from .generation import UpstreamError, UpstreamTimeoutError, OpenAIGenerationClient
from .http_utils import client_ip, handle_request, json_response, optional_payload, text_response
from .services import Services, build_services, get_services
from .validators import (
    NotFoundError,
    ValidationError,
    parse_request_payload,
)

__all__ = [
    "get_json_logger",
    "log_exception",
    "ConfigurationError",
    "Settings",
    "load_settings",
    "AuthError",
    "TokenCodec",
    "ContentStore",
    "ContentStoreError",
    "MemoryContentStore",
    "BlobContentStore",
    "UpstreamError",
    "UpstreamTimeoutError",
    "OpenAIGenerationClient",
    "client_ip",
    "handle_request",
    "json_response",
    "optional_payload",
    "text_response",
    "Services",
    "build_services",
    "get_services",
    "NotFoundError",
    "ValidationError",
    "parse_request_payload",
]
