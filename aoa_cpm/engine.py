from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .builder import GraphBuilder, RecordLike
from .exceptions import SchedulingError, UnknownActivity
from .floats import critical_activities, critical_paths
from .graph import ActivityGraph
from .logging_config import get_logger
from .models import Activity, ActivityId, ScheduleRecord, ScheduleReport
from .passes import BackwardPass, ForwardPass

logger = get_logger(__name__)


class CPMScheduler:
    """
    Critical Path Method scheduler for an Activity-on-Arrow network.

    Owns one ``ActivityGraph``; ``calculate`` runs the forward pass, the
    backward pass and the float calculation and returns a ``ScheduleReport``.
    Every step is written to ``calculation_log``.
    """

    def __init__(self, project_start: int = 0):
        if isinstance(project_start, bool) or not isinstance(project_start, int) or project_start < 0:
            raise ValueError(f"Project start must be a non-negative integer, got {project_start!r}.")
        self.project_start = project_start
        self.graph = ActivityGraph()
        self.calculation_log: List[str] = []
        self._report: Optional[ScheduleReport] = None
        self._report_version: Optional[int] = None

    def clear(self) -> None:
        """Clear all activities and calculations."""
        self.graph = ActivityGraph()
        self.calculation_log.clear()
        self._report = None

    @property
    def report(self) -> Optional[ScheduleReport]:
        """Last report, or None once the graph has changed since it was computed."""
        if self._report is None or self._report_version != self.graph.version:
            return None
        return self._report

    @property
    def activities(self) -> Dict[ActivityId, Activity]:
        return {act.id: act for act in self.graph}

    @property
    def project_duration(self) -> int:
        report = self.report
        return report.project_duration if report else 0

    @property
    def critical_path(self) -> List[ActivityId]:
        report = self.report
        return report.critical_path if report else []

    @property
    def critical_paths(self) -> List[List[ActivityId]]:
        report = self.report
        return report.critical_paths if report else []

    def add_activity(
        self,
        activity_id: ActivityId,
        duration: Optional[int] = None,
        predecessors: Iterable[ActivityId] = (),
    ) -> Activity:
        """
        Add an activity and link it after its predecessors.

        Predecessors must already exist; they are checked before anything is
        added, so a failure leaves the network unchanged.
        """
        predecessors = list(predecessors)
        for pred_id in predecessors:
            if pred_id not in self.graph:
                raise UnknownActivity(pred_id, referenced_by=activity_id)

        activity = self.graph.add_activity(activity_id, duration)
        for pred_id in predecessors:
            self.graph.link(pred_id, activity_id)
        return activity

    def link(self, from_id: ActivityId, to_id: ActivityId) -> bool:
        return self.graph.link(from_id, to_id)

    def load(self, records: Iterable[RecordLike]) -> None:
        """Replace the network with one built from ``records``."""
        graph = GraphBuilder().extend(records).build()
        self.clear()
        self.graph = graph

    def calculate(self, project_finish: Optional[int] = None) -> ScheduleReport:
        """
        Perform full CPM calculation.

        Args:
            project_finish: Imposed finish instant; defaults to the latest
                early finish of the activities without successors

        Raises:
            SchedulingError: any error from the passes; no partial report
                is kept
        """
        self.calculation_log.clear()
        self._report = None
        self._log("=" * 70)
        self._log("CPM CALCULATION")
        self._log("Critical Path Method (Activity-on-Arrow)")
        self._log("=" * 70)
        self._log("")

        try:
            ForwardPass(self.graph, self.project_start, trace=self._log).run()
            finish = BackwardPass(self.graph, project_finish, trace=self._log).run()
        except SchedulingError as exc:
            self._log(f"ERROR: {exc.message}")
            logger.warning("Scheduling failed (%s): %s", exc.error_code, exc.message)
            raise

        report = self._build_report(finish)

        self._log("")
        self._log("=" * 70)
        self._log("CALCULATION COMPLETE")
        self._log(f"Project Duration: {report.project_duration}")
        if report.critical_paths:
            self._log(f"Critical Paths: {len(report.critical_paths)}")
            for idx, path in enumerate(report.critical_paths, start=1):
                self._log(f"  {idx}. {' -> '.join(map(str, path))}")
        else:
            self._log("Critical Path: (none)")
        self._log("=" * 70)

        logger.info(
            "Scheduled %d activities: duration %d, %d critical path(s)",
            len(report), report.project_duration, len(report.critical_paths),
        )
        self._report = report
        self._report_version = self.graph.version
        return report

    def _log(self, message: str) -> None:
        self.calculation_log.append(message)

    def _build_report(self, finish: int) -> ScheduleReport:
        records = [
            ScheduleRecord(
                id=act.id,
                duration=act.duration.unwrap(),
                es=act.es.unwrap(),
                ef=act.ef.unwrap(),
                ls=act.ls.unwrap(),
                lf=act.lf.unwrap(),
                tf=act.total_float,
                ff=act.free_float,
                is_critical=act.is_critical,
            )
            for act in self.graph
        ]
        return ScheduleReport(
            records=records,
            project_duration=finish,
            critical_path=critical_activities(self.graph),
            critical_paths=critical_paths(self.graph),
        )

    def get_results_dataframe(self) -> pd.DataFrame:
        """Get calculation results as a pandas DataFrame."""
        data = []
        for act in self.graph:
            data.append(
                {
                    "ID": act.id,
                    "Duration": act.duration.value if act.duration.is_known else "-",
                    "ES": act.es.value if act.es.is_known else "-",
                    "EF": act.ef.value if act.ef.is_known else "-",
                    "LS": act.ls.value if act.ls.is_known else "-",
                    "LF": act.lf.value if act.lf.is_known else "-",
                    "TF": act.total_float if act.total_float is not None else "-",
                    "FF": act.free_float if act.free_float is not None else "-",
                    "Critical": "Yes" if act.is_critical else "No",
                }
            )
        return pd.DataFrame(data)

    def get_activities_dataframe(self) -> pd.DataFrame:
        """Get activities list as a pandas DataFrame."""
        data = []
        for act in self.graph:
            data.append(
                {
                    "ID": act.id,
                    "Duration": act.duration.value,
                    "Predecessors": [self.graph.at(i).id for i in act.predecessors],
                }
            )
        return pd.DataFrame(data, columns=["ID", "Duration", "Predecessors"])

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the activity definitions (not the computed values)."""
        return {
            "project_start": self.project_start,
            "activities": [
                {
                    "id": act.id,
                    "duration": act.duration.value,
                    "predecessors": [self.graph.at(i).id for i in act.predecessors],
                }
                for act in self.graph
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CPMScheduler:
        scheduler = cls(project_start=data.get("project_start", 0))
        scheduler.load(data.get("activities", []))
        return scheduler
