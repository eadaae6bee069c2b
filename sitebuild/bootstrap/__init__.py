"""
bootstrap/ - Bootstrap Layer

Provides configuration loading, logging setup and the command line entry point.
"""

from .config import (
    SiteBuildConfig,
    BuildConfig,
    LoggingConfig,
    load_config,
)

from .entrypoints import (
    cli_main,
    read_changes,
    setup_logging,
)


__all__ = [
    # Config
    "SiteBuildConfig",
    "BuildConfig",
    "LoggingConfig",
    "load_config",
    # Entry Points
    "cli_main",
    "read_changes",
    "setup_logging",
]
