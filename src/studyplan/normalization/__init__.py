"""Input normalization."""

from .config_resolver import DEFAULT_ENGINE_CONFIG, resolve_engine_config
from .request import normalize_request, to_snake_case

__all__ = ["DEFAULT_ENGINE_CONFIG", "normalize_request", "resolve_engine_config", "to_snake_case"]
