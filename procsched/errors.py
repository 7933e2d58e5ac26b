from __future__ import annotations


class SchedulerError(Exception):
    """Base class for every error raised by procsched."""


class ConfigurationError(SchedulerError, ValueError):
    """Invalid scheduler configuration, rejected at construction."""


class ProtocolError(SchedulerError, ValueError):
    """The caller reported something the engine cannot have produced."""


class TraceError(SchedulerError, ValueError):
    """Malformed trace input."""
