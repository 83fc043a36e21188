"""
rttypes features shared by the CLI and the API server.
Each feature is registered once and looked up by name from both surfaces.
"""

from typing import (
    Dict,
    Any,
    Callable,
    Optional,
    TypeVar,
    Generic,
)
from dataclasses import dataclass
import logging

from rttypes.config import load_settings
from rttypes.errors import RTTypesError, errors_payload

logger = logging.getLogger("rttypes.features")

T = TypeVar("T")


class OperationResult(Generic[T]):
    """Wrapper for operation results with success/error handling"""

    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.diagnostics = diagnostics

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, diagnostics: Optional[Dict[str, Any]] = None) -> "OperationResult[T]":
        return cls(success=False, error=error, diagnostics=diagnostics)


@dataclass
class Feature:
    """A named operation exposed on the CLI and/or the API"""

    name: str
    description: str
    handler: Callable[..., OperationResult]


class FeatureRegistry:
    """Registry for all rttypes features"""

    _features: Dict[str, Feature] = {}

    @classmethod
    def register(cls, feature: Feature) -> Feature:
        """Register a new feature"""
        cls._features[feature.name] = feature
        return feature

    @classmethod
    def get_feature(cls, name: str) -> Optional[Feature]:
        """Get a feature by name"""
        return cls._features.get(name)

    @classmethod
    def get_all_features(cls) -> Dict[str, Feature]:
        """Get all registered features"""
        return cls._features.copy()


# ----------------- Feature Handlers -----------------


def handle_version(**kwargs) -> OperationResult[Dict[str, str]]:
    """Handle version request"""
    from rttypes.version import get_version

    return OperationResult.ok({"version": get_version()})


def handle_layout(source: str, **kwargs) -> OperationResult[Dict[str, Any]]:
    """Parse schema text and report the computed layout of every struct"""
    from rttypes.report import layout_report
    from rttypes.schema import parse_schema

    limit = load_settings().max_schema_bytes
    if len(source.encode("utf-8")) > limit:
        return OperationResult.fail(
            f"Schema exceeds {limit} bytes",
            {"code": "E_SCHEMA_TOO_LARGE", "message": f"Schema exceeds {limit} bytes"},
        )
    try:
        schema = parse_schema(source)
    except RTTypesError as exc:
        logger.debug("Schema rejected: %s", exc)
        return OperationResult.fail(str(exc), errors_payload(exc))
    logger.info("Computed layout for %d struct(s)", len(schema))
    return OperationResult.ok(layout_report(schema).model_dump())


def handle_demo(**kwargs) -> OperationResult[Dict[str, Any]]:
    """Run the vec2/line/vector demonstration"""
    from rttypes.demo import run_demo

    return OperationResult.ok({"lines": run_demo()})


FeatureRegistry.register(Feature("version", "Show the rttypes version", handle_version))
FeatureRegistry.register(Feature("layout", "Compute struct layouts from schema text", handle_layout))
FeatureRegistry.register(Feature("demo", "Run the layout demonstration", handle_demo))
