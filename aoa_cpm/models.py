from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Iterator, List, Optional, Tuple

ActivityId = Hashable


def _check_non_negative(value: Optional[int], what: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an integer, got {value!r}.")
    if value < 0:
        raise ValueError(f"{what} must be non-negative, got {value}.")


@dataclass(frozen=True)
class Cost:
    """Duration of an activity. ``value`` is None while the duration is unknown."""

    value: Optional[int] = None

    def __post_init__(self) -> None:
        _check_non_negative(self.value, "Duration")

    @classmethod
    def unknown(cls) -> Cost:
        return cls(None)

    @property
    def is_known(self) -> bool:
        return self.value is not None

    def unwrap(self) -> int:
        if self.value is None:
            raise ValueError("Duration is unknown.")
        return self.value

    def __str__(self) -> str:
        return "-" if self.value is None else str(self.value)


@dataclass(frozen=True)
class Moment:
    """
    An instant measured from project start.

    Unknown (``value is None``) means the pass that computes it has not run
    yet; it is never the same thing as ``Moment(0)``.
    """

    value: Optional[int] = None

    def __post_init__(self) -> None:
        _check_non_negative(self.value, "Moment")

    @classmethod
    def unknown(cls) -> Moment:
        return cls(None)

    @property
    def is_known(self) -> bool:
        return self.value is not None

    def unwrap(self) -> int:
        if self.value is None:
            raise ValueError("Moment is unknown.")
        return self.value

    def __add__(self, cost: Cost) -> Moment:
        if not isinstance(cost, Cost):
            return NotImplemented
        if self.value is None or cost.value is None:
            return Moment.unknown()
        return Moment(self.value + cost.value)

    def __sub__(self, cost: Cost) -> Moment:
        if not isinstance(cost, Cost):
            return NotImplemented
        if self.value is None or cost.value is None:
            return Moment.unknown()
        return Moment(self.value - cost.value)

    def __str__(self) -> str:
        return "-" if self.value is None else str(self.value)


@dataclass
class Activity:
    """
    One activity of the network (an arrow in AOA terms).

    Only ``es`` and ``lf`` are stored; ``ef`` and ``ls`` are derived from the
    duration. ``successors`` and ``predecessors`` hold arena indices of the
    owning graph, never references to other activities.
    """

    id: ActivityId
    index: int
    duration: Cost = field(default_factory=Cost.unknown)
    successors: List[int] = field(default_factory=list)
    predecessors: List[int] = field(default_factory=list)

    # Forward pass result
    _es: Moment = field(default_factory=Moment.unknown, repr=False)

    # Backward pass result
    _lf: Moment = field(default_factory=Moment.unknown, repr=False)

    # Float calculations
    total_float: Optional[int] = None  # TF
    free_float: Optional[int] = None   # FF

    @property
    def es(self) -> Moment:
        return self._es

    @property
    def ef(self) -> Moment:
        return self._es + self.duration

    @property
    def lf(self) -> Moment:
        return self._lf

    @property
    def ls(self) -> Moment:
        return self._lf - self.duration

    @property
    def tf(self) -> Optional[int]:
        return self.total_float

    @property
    def ff(self) -> Optional[int]:
        return self.free_float

    @property
    def is_source(self) -> bool:
        return not self.predecessors

    @property
    def is_sink(self) -> bool:
        return not self.successors

    @property
    def is_critical(self) -> bool:
        return self.total_float == 0

    def set_es(self, value: int) -> None:
        self._es = Moment(value)

    def set_lf(self, value: int) -> None:
        if self.duration.is_known and value < self.duration.unwrap():
            raise ValueError(
                f"Late finish {value} of '{self.id}' is shorter than its duration {self.duration}."
            )
        self._lf = Moment(value)

    def reset_forward(self) -> None:
        self._es = Moment.unknown()

    def reset_backward(self) -> None:
        """Clear LS/LF and floats."""
        self._lf = Moment.unknown()
        self.total_float = None
        self.free_float = None

    def reset_calculations(self) -> None:
        """Reset all calculated values."""
        self.reset_forward()
        self.reset_backward()


@dataclass
class ActivityRecord:
    """Raw activity definition handed to the graph builder."""

    id: ActivityId
    duration: Optional[int]
    predecessor_ids: Tuple[ActivityId, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.predecessor_ids, str):
            self.predecessor_ids = (self.predecessor_ids,)
        self.predecessor_ids = tuple(self.predecessor_ids)


@dataclass(frozen=True)
class ScheduleRecord:
    """Computed schedule of a single activity."""

    id: ActivityId
    duration: int
    es: int
    ef: int
    ls: int
    lf: int
    tf: int
    ff: int
    is_critical: bool


@dataclass
class ScheduleReport:
    """Complete CPM result for a graph."""

    records: List[ScheduleRecord]
    project_duration: int
    critical_path: List[ActivityId]
    critical_paths: List[List[ActivityId]] = field(default_factory=list)

    def __iter__(self) -> Iterator[ScheduleRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, activity_id: ActivityId) -> ScheduleRecord:
        for record in self.records:
            if record.id == activity_id:
                return record
        raise KeyError(activity_id)
