"""
rulefilter.core: infrastructure shared by the rest of the package.

Modules:
    config      - SynthesisOptions, OracleOptions and FilterConfiguration
    logging     - RuleFilterLogger with MDC support, configure_loggers
"""

# Logging
from .logging import (
    RuleFilterLogger,
    getLogger,
    configure_loggers,
    reset_loggers,
    LoggerConfigurator,
    LevelFlag,
)

# Configuration
from .config import (
    ConfigConstants,
    FilterConfiguration,
    OracleOptions,
    SynthesisOptions,
)

__all__ = [
    "RuleFilterLogger",
    "getLogger",
    "configure_loggers",
    "reset_loggers",
    "LoggerConfigurator",
    "LevelFlag",
    "ConfigConstants",
    "FilterConfiguration",
    "OracleOptions",
    "SynthesisOptions",
]
