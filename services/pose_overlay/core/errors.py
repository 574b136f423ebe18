class InvalidArgumentError(ValueError):
    """Malformed or out-of-range flag configuration."""


class BackendUnavailableError(RuntimeError):
    """Requested compute backend is not registered or could not be initialized."""
