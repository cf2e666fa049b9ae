class DataUnavailableError(RuntimeError):
    """No position data could be read for the user."""
