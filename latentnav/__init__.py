"""
latentnav: Latent space navigator.

Explore a generative model's latent space through a 2D map of two
latent components, with cached hover previews, exact generation on
click, per-component sliders and keyframe video rendering.
"""

__version__ = "0.1.0"

from .config import EngineConfig, load_config
from .service.base import GenerationService
from .service.registry import get_service, list_services, register_service

__all__ = [
    "EngineConfig",
    "GenerationService",
    "get_service",
    "list_services",
    "load_config",
    "register_service",
]
