from __future__ import annotations

from loadgauge.config.models import (
    ConfigurationError,
    DispatchStrategy,
    RunConfig,
    TestParameters,
    parse_test_parameters,
)

__all__ = [
    "ConfigurationError",
    "DispatchStrategy",
    "RunConfig",
    "TestParameters",
    "parse_test_parameters",
]
