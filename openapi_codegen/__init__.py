"""Генератор типизированных Python клиентов из OpenAPI 3"""

from .config import OpenApiConfig
from .errors import (
    ConfigurationError,
    GenerationError,
    NamingConflictError,
    NotSupportedError,
    ParseError,
    SpecValidationError,
    UnresolvedReferenceError,
)
from .generator import ApiClientGenerator, generate_client

__all__ = [
    "ApiClientGenerator",
    "generate_client",
    "OpenApiConfig",
    "GenerationError",
    "ParseError",
    "UnresolvedReferenceError",
    "NamingConflictError",
    "SpecValidationError",
    "ConfigurationError",
    "NotSupportedError",
]
