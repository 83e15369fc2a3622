"""Domain errors."""


class PlannerError(Exception):
    """Base class for planner errors."""


class ParseFailure(PlannerError):
    """Food recognition failed or returned an incomplete structure."""


class PlanGenerationFailure(PlannerError):
    """Plan generation failed or returned an incomplete structure."""


class PersistenceReadFailure(PlannerError):
    """A stored record is present but malformed."""


class SessionBusyError(PlannerError):
    """A request was issued while another one is outstanding."""


class ImageTooLargeError(ValueError):
    """Image payload exceeds the configured size cap."""
