"""
Version information for the JobSpark marketplace.

This file is the single source of truth for version numbers.
The web service reports it from /health.
"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)

# Build metadata (set by CI/CD or manually)
BUILD_DATE = "2026-10-19"
GIT_COMMIT = None  # Will be set at runtime if available
