"""API EasyPortal exceptions.

Only import/lookup/configuration problems are raised. Per-request failures
(transport errors, non-2xx statuses, unparsable bodies) are captured in an
ExecutionOutcome instead.
"""


class EasyPortalError(Exception):
    """Base exception for API EasyPortal."""


class SpecInvalid(EasyPortalError):
    """Raised when an API description cannot be parsed or has no `paths`."""


class EndpointNotFound(EasyPortalError):
    """Raised when an endpoint key matches nothing in the catalog."""


class ConfigError(EasyPortalError):
    """Raised when a configuration file is unreadable or invalid."""
