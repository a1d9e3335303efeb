"""
smswatch/errors.py
Exception hierarchy. Parsers and remote classifiers never raise these for
single messages — they are cycle- and startup-level conditions only.
"""


class SmsWatchError(Exception):
    """Base class for all smswatch errors."""


class ConfigError(SmsWatchError):
    """Configuration is missing a required value or holds an invalid one."""


class SourceError(SmsWatchError):
    """The message source failed for a reason other than 'no results'."""

    def __init__(self, message: str, exit_code: int = -1):
        super().__init__(message)
        self.exit_code = exit_code


class SourceCancelled(SmsWatchError):
    """A fetch was aborted because the watcher is shutting down."""


class DeviceUnreachable(SmsWatchError):
    """The device could not be reached after the bounded connection retries."""
