"""Error types raised by the audit engine."""

from __future__ import annotations


class GtAuditError(Exception):
    """Base class for gt-audit errors."""


class ConfigurationError(GtAuditError):
    """Invalid run configuration. Raised before any image is processed."""


class DatasetError(GtAuditError):
    """Dataset layout could not be resolved."""


class ImageLoadError(GtAuditError):
    """Image file missing, unreadable or undecodable."""


class InferenceError(GtAuditError):
    """Detection backend failed for one image."""
