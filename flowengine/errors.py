# flowengine/errors.py


class FlowError(Exception):
    """Base class for every error raised inside the engine."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(FlowError):
    """A node is missing or has malformed configuration."""


class ProviderError(FlowError):
    """A provider answered with an error that is not worth retrying."""


class RateLimitExceededError(ProviderError):
    """Rate-limit retries were exhausted."""


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached at all."""

    def __init__(self, message: str, endpoint: str = ""):
        self.endpoint = endpoint
        super().__init__(message)


class GraphStructureError(FlowError):
    """The graph can not be run (no input, cycle, starved node)."""

    def __init__(self, message: str, node_ids=None):
        self.node_ids = list(node_ids or [])
        super().__init__(message)
