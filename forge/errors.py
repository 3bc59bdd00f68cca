"""Exception hierarchy for the orchestration engine."""


class ForgeError(Exception):
    """Base class for orchestration errors."""
    pass


class GenerationError(ForgeError):
    """The text-generation service call failed."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class PlanGenerationError(ForgeError):
    """A plan could not be produced from the generation service."""
    pass


class PlanParseError(PlanGenerationError):
    """The planner response contained no usable structured plan."""
    pass
