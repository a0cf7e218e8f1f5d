"""Named generation services.

Built-in services register themselves on import with @register_service.
Third-party packages add theirs through the "latentnav.services" entry
point group, which is scanned once, the first time a name is missing:

    [project.entry-points."latentnav.services"]
    comfy = "my_package.services:ComfyService"
"""

from importlib.metadata import entry_points
from typing import Dict, List, Optional, Type

from .base import GenerationService

ENTRY_POINT_GROUP = "latentnav.services"

_SERVICES: Dict[str, Type[GenerationService]] = {}
_scanned = False


def _check(name: str, cls) -> Type[GenerationService]:
    if not (isinstance(cls, type) and issubclass(cls, GenerationService)):
        raise TypeError(f"Service '{name}' must subclass GenerationService, got {cls!r}")
    return cls


def register_service(name: str):
    """Class decorator: make a GenerationService available as `name`."""
    def decorator(cls):
        _SERVICES[name] = _check(name, cls)
        return cls
    return decorator


def discover_services(force: bool = False) -> List[str]:
    """Load services advertised by installed packages; returns the names added."""
    global _scanned
    if _scanned and not force:
        return []
    _scanned = True

    added = []
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        if ep.name in _SERVICES:
            continue
        try:
            _SERVICES[ep.name] = _check(ep.name, ep.load())
        except (ImportError, AttributeError, TypeError) as e:
            print(f"[Service] Skipping entry point '{ep.name}': {e}")
            continue
        added.append(ep.name)
    return added


def get_service(name: str) -> Type[GenerationService]:
    """Service class registered as `name`.

    Raises:
        ValueError: If no such service is registered or advertised
    """
    if name not in _SERVICES:
        discover_services()
    try:
        return _SERVICES[name]
    except KeyError:
        known = ", ".join(sorted(_SERVICES)) or "none"
        raise ValueError(f"Unknown service: '{name}' (known: {known})") from None


def list_services() -> List[str]:
    discover_services()
    return sorted(_SERVICES)


def unregister_service(name: str) -> Optional[Type[GenerationService]]:
    return _SERVICES.pop(name, None)
