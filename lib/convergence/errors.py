"""Errors raised by the convergence primitives."""


class ConvergenceTimeoutError(TimeoutError):
    """A wait_until condition did not hold before its timeout expired."""

    def __init__(self, message: str, timeout_seconds: float = 0.0):
        super().__init__(message)
        self.message = message
        self.timeout_seconds = timeout_seconds
