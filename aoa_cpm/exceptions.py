"""
Exceptions raised while building and scheduling an activity network.

Every error carries a snake_case ``error_code`` and a human-readable
``message``. Input errors (duplicate ids, unknown ids, cycles, bad
durations) can be fixed by the caller and retried; ``NegativeFloat`` and
``InconsistentSchedule`` abort the whole scheduling run.
"""

from typing import Any, Dict, Hashable, Optional


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    error_code = "scheduling_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message}


class DuplicateId(SchedulingError):
    """An activity with this id already exists."""

    error_code = "duplicate_id"

    def __init__(self, activity_id: Hashable):
        super().__init__(f"Activity '{activity_id}' already exists.")
        self.activity_id = activity_id


class UnknownActivity(SchedulingError, KeyError):
    """Referenced activity is not part of the graph."""

    error_code = "unknown_activity"

    def __init__(self, activity_id: Hashable, referenced_by: Optional[Hashable] = None):
        if referenced_by is None:
            message = f"Activity '{activity_id}' not found."
        else:
            message = f"Activity '{referenced_by}' references undefined predecessor '{activity_id}'."
        super().__init__(message)
        self.activity_id = activity_id
        self.referenced_by = referenced_by

    def __str__(self) -> str:
        return self.message


class CycleDetected(SchedulingError):
    """Linking would create (or the graph contains) a circular dependency."""

    error_code = "cycle_detected"

    def __init__(self, from_id: Optional[Hashable] = None, to_id: Optional[Hashable] = None, message: str = ""):
        if not message:
            message = f"Linking '{from_id}' -> '{to_id}' would create a circular dependency."
        super().__init__(message)
        self.from_id = from_id
        self.to_id = to_id


class InvalidDuration(SchedulingError, ValueError):
    """Duration is negative, not an integer, or still unknown when a pass runs."""

    error_code = "invalid_duration"

    def __init__(self, activity_id: Hashable, message: str):
        super().__init__(message)
        self.activity_id = activity_id


class GraphMutatedDuringPass(SchedulingError):
    """The graph changed while a pass was traversing it."""

    error_code = "graph_mutated_during_pass"

    def __init__(self, pass_name: str):
        super().__init__(f"Activity graph was modified during the {pass_name} pass.")
        self.pass_name = pass_name


class ForwardPassNotRun(SchedulingError):
    """Backward pass requested before a valid forward pass."""

    error_code = "forward_pass_not_run"

    def __init__(self, activity_id: Optional[Hashable] = None):
        if activity_id is None:
            message = "Forward pass has not been run on this graph."
        else:
            message = f"Forward pass has not been run: activity '{activity_id}' has no early start."
        super().__init__(message)
        self.activity_id = activity_id


class NegativeFloat(SchedulingError):
    """Late start would precede early start: the requested finish is infeasible."""

    error_code = "negative_float"

    def __init__(self, activity_id: Hashable, es: int, ls: int):
        super().__init__(
            f"Activity '{activity_id}' has negative float: LS = {ls} < ES = {es}."
        )
        self.activity_id = activity_id
        self.es = es
        self.ls = ls


class InconsistentSchedule(SchedulingError):
    """Computed values contradict each other. Indicates an engine defect."""

    error_code = "inconsistent_schedule"

    def __init__(self, activity_id: Hashable, message: str):
        super().__init__(f"Inconsistent schedule for activity '{activity_id}': {message}")
        self.activity_id = activity_id
