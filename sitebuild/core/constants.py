"""
sitebuild Policy Constants

Defaults shared by the build engine, configuration layer and CLI.
"""

# ==================== Change Coalescing ====================

# Quiet period after the last change notification before a rebuild is flushed
DEFAULT_DEBOUNCE_MS = 50

# Notification message type that requests a rebuild
REBUILD_MESSAGE_TYPE = "rebuild"

# ==================== Audit Trail ====================

DEFAULT_MAX_LOG_ENTRIES = 10000

# ==================== Build Kinds ====================

BUILD_KIND_FULL = "full"
BUILD_KIND_PARTIAL = "partial"

FULL_BUILD_MESSAGE = "Building site"
PARTIAL_BUILD_MESSAGE = "Partial rebuild"

# ==================== Application ====================

VERSION = "0.3.0"

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
