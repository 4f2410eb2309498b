"""
Loading of analysis collaborators from configuration.

Each collaborator is configured as a ``"module:attribute"`` path pointing at
a class or zero-argument factory.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Optional

from reasonet.analyzers.base import GistGenerator, QualityAnalyzer, SecurityAnalyzer
from reasonet.config import Settings, settings as default_settings
from reasonet.exceptions import AnalyzerLoadError

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerSet:
    """The three collaborators the fan-out runs for every pull request."""

    quality: QualityAnalyzer
    security: SecurityAnalyzer
    gist: GistGenerator


def load_object(path: str) -> Any:
    """
    Import and instantiate the object named by ``"module:attribute"``.

    Raises:
        AnalyzerLoadError: If the path is malformed or cannot be imported
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise AnalyzerLoadError(f"Expected 'module:attribute', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise AnalyzerLoadError(f"Cannot import {module_name}: {e}") from e

    if not hasattr(module, attr):
        raise AnalyzerLoadError(f"Module {module_name} has no attribute {attr}")

    factory = getattr(module, attr)
    return factory() if callable(factory) else factory


def load_analyzers(config: Optional[Settings] = None) -> AnalyzerSet:
    """
    Build the configured collaborator set.

    Raises:
        AnalyzerLoadError: If a collaborator is missing its protocol method
    """
    config = config or default_settings
    quality = load_object(config.quality_analyzer)
    security = load_object(config.security_analyzer)
    gist = load_object(config.gist_generator)

    for name, obj, protocol in (
        ("quality_analyzer", quality, QualityAnalyzer),
        ("security_analyzer", security, SecurityAnalyzer),
        ("gist_generator", gist, GistGenerator),
    ):
        if not isinstance(obj, protocol):
            raise AnalyzerLoadError(
                f"{name} {type(obj).__name__} does not implement {protocol.__name__}"
            )

    logger.info(
        f"Loaded analyzers: quality={type(quality).__name__}, "
        f"security={type(security).__name__}, gist={type(gist).__name__}"
    )
    return AnalyzerSet(quality=quality, security=security, gist=gist)
