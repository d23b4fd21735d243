from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import ForwardPassNotRun, InconsistentSchedule
from .graph import ActivityGraph
from .logging_config import get_logger
from .models import Activity, ActivityId

logger = get_logger(__name__)


class FloatCalculator:
    """
    Total and free float of activities whose ES and LF are both known.

    TF = LS - ES (must equal LF - EF).
    FF = min(ES of successors) - EF, or project finish - EF for a sink.
    """

    def __init__(
        self,
        graph: ActivityGraph,
        project_finish: int,
        trace: Optional[Callable[[str], None]] = None,
    ):
        self.graph = graph
        self.project_finish = project_finish
        self._trace = trace or (lambda message: None)

    def compute(self, activity: Activity) -> Tuple[int, int]:
        """Return ``(tf, ff)`` for ``activity`` without storing them."""
        es, ef, ls, lf = self._known(activity)

        tf = ls - es
        if tf != lf - ef:
            raise InconsistentSchedule(
                activity.id, f"LS - ES = {tf} disagrees with LF - EF = {lf - ef}."
            )

        if activity.is_sink:
            ff = self.project_finish - ef
        else:
            successors = [self.graph.at(i) for i in activity.successors]
            ff = min(self._known(succ)[0] for succ in successors) - ef

        if ff < 0:
            raise InconsistentSchedule(activity.id, f"free float {ff} is negative.")
        if ff > tf:
            raise InconsistentSchedule(activity.id, f"free float {ff} exceeds total float {tf}.")
        return tf, ff

    def _known(self, activity: Activity) -> Tuple[int, int, int, int]:
        if not activity.es.is_known:
            raise ForwardPassNotRun(activity.id)
        if not activity.lf.is_known:
            raise InconsistentSchedule(activity.id, "backward pass results are missing.")
        return (
            activity.es.unwrap(),
            activity.ef.unwrap(),
            activity.ls.unwrap(),
            activity.lf.unwrap(),
        )

    def apply(self) -> None:
        """Compute and store TF/FF for every activity in the graph."""
        self._trace("\n\nFLOAT CALCULATIONS")
        self._trace("-" * 50)

        for act in self.graph.topological_order():
            tf, ff = self.compute(act)
            act.total_float = tf
            act.free_float = ff

            self._trace(f"\n{act.id}:")
            self._trace(f"  Total Float (TF) = LS - ES = {act.ls} - {act.es} = {tf}")
            if act.is_sink:
                self._trace(
                    f"  Free Float (FF) = Project Finish - EF = {self.project_finish} - {act.ef} = {ff}"
                )
            else:
                self._trace(f"  Free Float (FF) = min(ES of successors) - EF = {ff}")
            self._trace(f"  -> {'CRITICAL' if tf == 0 else 'Not critical'}")

        logger.debug("Floats computed for %d activities", len(self.graph))


def critical_activities(graph: ActivityGraph) -> List[ActivityId]:
    """Ids of zero total float activities, in dependency order."""
    return [act.id for act in graph.topological_order() if act.is_critical]


def critical_paths(graph: ActivityGraph) -> List[List[ActivityId]]:
    """
    Every chain of critical activities joined by driving links.

    A link is driving when the successor's ES equals the predecessor's EF.
    Chains start at critical activities with no incoming critical link and
    end at ones with no outgoing critical link.
    """
    critical = [act for act in graph.topological_order() if act.is_critical]
    if not critical:
        return []

    successors: Dict[int, List[int]] = defaultdict(list)
    incoming: Dict[int, int] = defaultdict(int)

    for pred in critical:
        for succ_index in pred.successors:
            succ = graph.at(succ_index)
            if succ.is_critical and succ.es == pred.ef:
                successors[pred.index].append(succ.index)
                incoming[succ.index] += 1

    paths: List[List[ActivityId]] = []

    def dfs(node: int, path: List[ActivityId]) -> None:
        new_path = path + [graph.at(node).id]
        if not successors[node]:
            paths.append(new_path)
            return
        for succ in successors[node]:
            dfs(succ, new_path)

    for act in critical:
        if incoming[act.index] == 0:
            dfs(act.index, [])

    return paths
