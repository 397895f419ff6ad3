class ClinicOpsError(Exception):
    pass


class ValidationError(ClinicOpsError, ValueError):
    """Input outside documented ranges. Carries every violated field."""

    def __init__(self, errors: list[dict]):
        self.errors = list(errors)
        fields = ", ".join(str(e.get("field")) for e in self.errors)
        super().__init__(f"Invalid request data: {fields}")


class NotFoundError(ClinicOpsError, LookupError):
    pass


class InvalidOptimizationType(ClinicOpsError, ValueError):
    def __init__(self, optimization_type: str | None):
        self.optimization_type = optimization_type
        super().__init__(f"Invalid optimization type: {optimization_type}")


class DependencyFailure(ClinicOpsError, RuntimeError):
    """The data store could not complete a read or write."""
