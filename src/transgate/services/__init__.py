"""Translation service adapters."""
from typing import Any, Dict, Mapping, Type

from .base import TranslateEngine, TranslationAdapter
from .freed import FreedService


# Adapter registry
_SERVICES: Dict[str, Type[TranslationAdapter]] = {
    'freed': FreedService,
}


def get_service(name: str, **kwargs) -> TranslationAdapter:
    """Factory to create a translation adapter by name.

    Args:
        name: Adapter name ('freed')
        **kwargs: Adapter-specific initialization parameters

    Returns:
        Initialized translation adapter

    Raises:
        ValueError: If adapter name is not recognized

    Examples:
        >>> service = get_service('freed', config={'url': 'https://...', ...})
    """
    name_lower = name.lower()

    if name_lower not in _SERVICES:
        available = ', '.join(_SERVICES.keys())
        raise ValueError(
            f"Unknown service '{name}'. Available services: {available}"
        )

    service_class = _SERVICES[name_lower]
    return service_class(**kwargs)


def get_service_for_engine(engine_code: str, configs: Mapping[str, Any]) -> TranslationAdapter:
    """Create the adapter that serves an engine code.

    Args:
        engine_code: Engine code as selected by the dispatcher (e.g. 'freed')
        configs: Raw configuration map for that adapter

    Raises:
        ValueError: If no adapter serves the engine
    """
    for service_class in _SERVICES.values():
        if any(engine.code == engine_code for engine in service_class.ENGINES):
            return service_class(configs)

    raise ValueError(f"No service supports engine '{engine_code}'")


def list_services() -> list:
    """List all available translation adapters.

    Returns:
        List of adapter names
    """
    return list(_SERVICES.keys())


__all__ = [
    'TranslationAdapter',
    'TranslateEngine',
    'FreedService',
    'get_service',
    'get_service_for_engine',
    'list_services',
]
