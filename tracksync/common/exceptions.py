"""
Custom exceptions for the tracksync import pipeline
"""


class TrackSyncError(Exception):
    """Base exception for all tracksync errors"""
    pass


class ConnectionError(TrackSyncError):
    """Connection to a source or sync target failed"""
    pass


class ReadError(TrackSyncError):
    """Error reading from source"""
    pass


class TransformError(TrackSyncError):
    """Error while transforming a record"""
    pass


class ConfigurationError(TrackSyncError):
    """Invalid configuration"""
    pass


class RuleCompilationError(TrackSyncError):
    """A correction rule pattern is not a valid regular expression"""

    def __init__(self, rule_id: str, pattern: str, reason: str):
        self.rule_id = rule_id
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Rule {rule_id} has an invalid pattern {pattern!r}: {reason}")


class ReconciliationError(TrackSyncError):
    """Reconciliation pass cannot proceed"""
    pass


class ApplyOperationError(TrackSyncError):
    """A single insert/update/delete operation failed against the sync target"""
    pass


class PipelineError(TrackSyncError):
    """Pipeline execution error"""
    pass
