from __future__ import annotations

from collections import deque
from typing import Dict, Iterator, List, Optional

import networkx as nx

from .exceptions import CycleDetected, DuplicateId, InvalidDuration, UnknownActivity
from .logging_config import get_logger
from .models import Activity, ActivityId, Cost

logger = get_logger(__name__)


def _to_cost(activity_id: ActivityId, duration: Optional[int]) -> Cost:
    if duration is None:
        return Cost.unknown()
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise InvalidDuration(activity_id, f"Duration of '{activity_id}' must be an integer, got {duration!r}.")
    if duration < 0:
        raise InvalidDuration(activity_id, f"Duration of '{activity_id}' must be non-negative.")
    return Cost(duration)


class ActivityGraph:
    """
    Arena of activities and their precedence links.

    Activities are stored in insertion order and addressed by their arena
    index; adjacency is kept as index lists on both ends of every link. The
    graph is acyclic by construction: ``link`` refuses edges that would close
    a cycle.
    """

    def __init__(self) -> None:
        self._activities: List[Activity] = []
        self._index: Dict[ActivityId, int] = {}
        self._version = 0
        # Set by the passes; cleared on every structural change.
        self.forward_version: Optional[int] = None
        self.project_finish: Optional[int] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def add_activity(self, activity_id: ActivityId, duration: Optional[int] = None) -> Activity:
        """
        Add an activity to the arena.

        Args:
            activity_id: Unique, hashable identifier
            duration: Non-negative integer, or None to set it later

        Raises:
            DuplicateId: ``activity_id`` is already present
            InvalidDuration: duration is negative or not an integer
        """
        if activity_id in self._index:
            raise DuplicateId(activity_id)
        cost = _to_cost(activity_id, duration)

        activity = Activity(id=activity_id, index=len(self._activities), duration=cost)
        self._activities.append(activity)
        self._index[activity_id] = activity.index
        self._touch()
        logger.debug("Added activity %r (duration=%s)", activity_id, cost)
        return activity

    def set_duration(self, activity_id: ActivityId, duration: int) -> None:
        activity = self.get(activity_id)
        cost = _to_cost(activity_id, duration)
        if not cost.is_known:
            raise InvalidDuration(activity_id, f"Duration of '{activity_id}' cannot be reset to unknown.")
        activity.duration = cost
        self._touch()

    def link(self, from_id: ActivityId, to_id: ActivityId) -> bool:
        """
        Make ``to_id`` a successor of ``from_id`` (and ``from_id`` a predecessor of ``to_id``).

        Returns False if the link already exists, True if it was added.

        Raises:
            UnknownActivity: either id is absent
            CycleDetected: ``from_id`` is reachable from ``to_id``
        """
        src = self.get(from_id)
        dst = self.get(to_id)

        if dst.index in src.successors:
            return False
        if src.index == dst.index or self._reaches(dst.index, src.index):
            raise CycleDetected(from_id, to_id)

        # Both sides change together; nothing below can fail.
        src.successors.append(dst.index)
        dst.predecessors.append(src.index)
        self._touch()
        logger.debug("Linked %r -> %r", from_id, to_id)
        return True

    def _reaches(self, start: int, target: int) -> bool:
        """True if ``target`` is reachable from ``start`` over successor links."""
        seen = {start}
        stack = [start]
        while stack:
            node = stack.pop()
            if node == target:
                return True
            for succ in self._activities[node].successors:
                if succ not in seen:
                    seen.add(succ)
                    stack.append(succ)
        return False

    def _touch(self) -> None:
        self._version += 1
        if self.forward_version is not None or self.project_finish is not None:
            logger.debug("Graph modified; discarding computed schedule")
        self.forward_version = None
        self.project_finish = None
        for act in self._activities:
            act.reset_calculations()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._activities)

    def __iter__(self) -> Iterator[Activity]:
        return iter(self._activities)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._index

    def get(self, activity_id: ActivityId) -> Activity:
        try:
            return self._activities[self._index[activity_id]]
        except KeyError:
            raise UnknownActivity(activity_id) from None

    def at(self, index: int) -> Activity:
        return self._activities[index]

    def successors(self, activity_id: ActivityId) -> List[Activity]:
        return [self._activities[i] for i in self.get(activity_id).successors]

    def predecessors(self, activity_id: ActivityId) -> List[Activity]:
        return [self._activities[i] for i in self.get(activity_id).predecessors]

    def sources(self) -> List[Activity]:
        return [act for act in self._activities if act.is_source]

    def sinks(self) -> List[Activity]:
        return [act for act in self._activities if act.is_sink]

    def topological_order(self) -> List[Activity]:
        """Activities in topological order (predecessors before successors)."""
        in_degree = [len(act.predecessors) for act in self._activities]
        queue = deque(i for i, degree in enumerate(in_degree) if degree == 0)
        order: List[Activity] = []

        while queue:
            node = queue.popleft()
            order.append(self._activities[node])
            for succ in self._activities[node].successors:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    queue.append(succ)

        if len(order) != len(self._activities):
            stuck = [act.id for act, degree in zip(self._activities, in_degree) if degree > 0]
            raise CycleDetected(message=f"Circular dependency among activities: {', '.join(map(str, stuck))}")
        return order

    def to_networkx(self) -> nx.DiGraph:
        """
        Export the network as a ``networkx.DiGraph``.

        Nodes are activity ids carrying the duration and any computed values
        (None while unknown); edges go from predecessor to successor.
        """
        graph = nx.DiGraph()
        for act in self._activities:
            graph.add_node(
                act.id,
                duration=act.duration.value,
                es=act.es.value,
                ef=act.ef.value,
                ls=act.ls.value,
                lf=act.lf.value,
                tf=act.total_float,
                ff=act.free_float,
                critical=act.is_critical,
            )
        for act in self._activities:
            for succ in act.successors:
                graph.add_edge(act.id, self._activities[succ].id)
        return graph
