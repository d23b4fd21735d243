from __future__ import annotations

from typing import Callable, Optional

from .exceptions import (
    CycleDetected,
    ForwardPassNotRun,
    GraphMutatedDuringPass,
    InvalidDuration,
    NegativeFloat,
    SchedulingError,
)
from .floats import FloatCalculator
from .graph import ActivityGraph
from .logging_config import get_logger

logger = get_logger(__name__)

Trace = Callable[[str], None]


class _Pass:
    name = ""

    def __init__(self, graph: ActivityGraph, trace: Optional[Trace] = None):
        self.graph = graph
        self._trace = trace or (lambda message: None)
        self._version = graph.version

    def _check_unchanged(self) -> None:
        if self.graph.version != self._version:
            raise GraphMutatedDuringPass(self.name)

    def _abort(self, exc: SchedulingError) -> None:
        """Re-raise ``exc``, reporting a concurrent modification in its place if one happened."""
        logger.debug("%s pass aborted: %s", self.name.capitalize(), exc.message)
        if self.graph.version != self._version and not isinstance(exc, GraphMutatedDuringPass):
            raise GraphMutatedDuringPass(self.name) from exc
        raise exc


class ForwardPass(_Pass):
    """
    Forward pass: Early Start (ES) and Early Finish (EF).

    ES = project start for activities without predecessors, otherwise the
    largest EF among the predecessors. EF = ES + duration.
    """

    name = "forward"

    def __init__(self, graph: ActivityGraph, project_start: int = 0, trace: Optional[Trace] = None):
        super().__init__(graph, trace)
        if isinstance(project_start, bool) or not isinstance(project_start, int):
            raise TypeError(f"Project start must be an integer, got {project_start!r}.")
        if project_start < 0:
            raise ValueError("Project start must be non-negative.")
        self.project_start = project_start

    def run(self) -> None:
        graph = self.graph
        self._version = graph.version

        for act in graph:
            if not act.duration.is_known:
                raise InvalidDuration(act.id, f"Duration of '{act.id}' is still unknown.")

        order = graph.topological_order()
        for act in graph:
            act.reset_calculations()
        graph.forward_version = None
        graph.project_finish = None

        self._trace("FORWARD PASS (Calculating ES and EF)")
        self._trace("-" * 50)

        try:
            for act in order:
                self._check_unchanged()
                if act.is_source:
                    es = self.project_start
                    act.set_es(es)
                    self._trace(f"\n{act.id} (no predecessors):")
                    self._trace(f"  ES = Project Start = {act.es}")
                else:
                    preds = [graph.at(i) for i in act.predecessors]
                    if not all(p.ef.is_known for p in preds):
                        raise CycleDetected(
                            message=f"No eligible activity: predecessors of '{act.id}' are unresolved."
                        )
                    es = max(p.ef.unwrap() for p in preds)
                    act.set_es(es)
                    self._trace(f"\n{act.id} (predecessors: {', '.join(str(p.id) for p in preds)}):")
                    for p in preds:
                        self._trace(f"  From {p.id}: ES >= EF({p.id}) = {p.ef}")
                    self._trace(f"  -> ES = {act.es}")
                self._trace(f"  -> EF = ES + Duration = {act.es} + {act.duration} = {act.ef}")
            self._check_unchanged()
        except SchedulingError as exc:
            for act in graph:
                act.reset_calculations()
            self._abort(exc)

        graph.forward_version = graph.version
        logger.debug("Forward pass done over %d activities", len(order))


class BackwardPass(_Pass):
    """
    Backward pass: Late Finish (LF) and Late Start (LS), then floats.

    LF = project finish for activities without successors, otherwise the
    smallest LS among the successors. LS = LF - duration.
    """

    name = "backward"

    def __init__(
        self,
        graph: ActivityGraph,
        project_finish: Optional[int] = None,
        trace: Optional[Trace] = None,
    ):
        super().__init__(graph, trace)
        if project_finish is not None and (
            isinstance(project_finish, bool) or not isinstance(project_finish, int)
        ):
            raise TypeError(f"Project finish must be an integer, got {project_finish!r}.")
        self.project_finish = project_finish

    def _require_forward_pass(self) -> None:
        graph = self.graph
        if graph.forward_version == graph.version:
            return
        for act in graph:
            if not act.es.is_known:
                raise ForwardPassNotRun(act.id)
        raise ForwardPassNotRun()

    def run(self) -> int:
        """Run the pass and return the project finish instant used."""
        graph = self.graph
        self._version = graph.version
        self._require_forward_pass()

        finish = self.project_finish
        if finish is None:
            finish = max((act.ef.unwrap() for act in graph.sinks()), default=0)

        for act in graph:
            act.reset_backward()
        graph.project_finish = None

        self._trace("\n\nBACKWARD PASS (Calculating LS and LF)")
        self._trace("-" * 50)

        try:
            for act in reversed(graph.topological_order()):
                self._check_unchanged()
                succs = [graph.at(i) for i in act.successors]
                lf = finish if act.is_sink else min(s.ls.unwrap() for s in succs)
                es = act.es.unwrap()
                ls = lf - act.duration.unwrap()
                if ls < es:
                    raise NegativeFloat(act.id, es, ls)
                act.set_lf(lf)

                if act.is_sink:
                    self._trace(f"\n{act.id} (no successors):")
                    self._trace(f"  LF = Project Finish = {lf}")
                else:
                    self._trace(f"\n{act.id} (successors: {', '.join(str(s.id) for s in succs)}):")
                    for s in succs:
                        self._trace(f"  To {s.id}: LF <= LS({s.id}) = {s.ls}")
                    self._trace(f"  -> LF = {lf}")
                self._trace(f"  -> LS = LF - Duration = {act.lf} - {act.duration} = {act.ls}")

            self._check_unchanged()
            graph.project_finish = finish
            FloatCalculator(graph, finish, self._trace).apply()
            self._check_unchanged()
        except SchedulingError as exc:
            for act in graph:
                act.reset_backward()
            graph.project_finish = None
            self._abort(exc)

        logger.debug("Backward pass done, project finish = %d", finish)
        return finish
