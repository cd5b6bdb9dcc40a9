class JuliaError(Exception):
    """Base class for failures that end a run."""


class AllocationError(JuliaError):
    def __init__(self, what, nbytes, reason=""):
        self.what = what
        self.nbytes = nbytes
        self.reason = reason
        message = f"failed to allocate {what} buffer ({nbytes} bytes)"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AcceleratorError(JuliaError):
    def __init__(self, operation, location, reason):
        self.operation = operation
        self.location = location
        self.reason = reason
        super().__init__(f"CUDA error in {operation} at {location}: {reason}")
