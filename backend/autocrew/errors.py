"""Domain exceptions that are not plain HTTP errors."""


class CodeAllocationConflict(Exception):
    """A generated identifier kept colliding with concurrent inserts."""

    def __init__(self, resource: str, attempts: int):
        self.resource = resource
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique code for {resource} after {attempts} attempts")
