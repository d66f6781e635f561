from __future__ import annotations


class SpotSaveError(Exception):
    """Fatal error: aborts the run before or during traversal."""


class ConfigError(SpotSaveError):
    pass


class PreconditionError(SpotSaveError):
    pass


class TraversalError(SpotSaveError):
    pass
