class ValidationError(ValueError):
    """Raised when a client payload (feedback or scan config) is malformed."""
