"""Generation service interface, implementations and registry."""

from .base import GenerationService

# Import services to register them
from .http import HttpGenerationService
from .mock import MockGenerationService
from .registry import discover_services, get_service, list_services, register_service

__all__ = [
    "GenerationService",
    "HttpGenerationService",
    "MockGenerationService",
    "discover_services",
    "get_service",
    "list_services",
    "register_service",
]
