from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .exceptions import UnknownActivity
from .graph import ActivityGraph
from .logging_config import get_logger
from .models import ActivityId, ActivityRecord

logger = get_logger(__name__)

RecordLike = Union[ActivityRecord, Sequence[Any], Mapping[str, Any]]


def _is_missing(value: object) -> bool:
    try:
        return value is None or bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _plain(value: Any) -> Any:
    """Unwrap numpy scalars coming out of a DataFrame."""
    return value.item() if hasattr(value, "item") and not isinstance(value, str) else value


def _predecessor_ids(preds: Any) -> Tuple[ActivityId, ...]:
    if isinstance(preds, str):
        return tuple(_split_predecessors(preds, {}))
    return tuple(preds or ())


def to_record(raw: RecordLike) -> ActivityRecord:
    """
    Normalise one activity definition.

    Accepts an ``ActivityRecord``, an ``(id, duration, predecessor_ids)``
    tuple (predecessors optional) or a mapping with ``id``, ``duration`` and
    ``predecessors`` (or ``predecessor_ids``) keys. Predecessors given as a
    string are read as ``"A;B"`` / ``"A,B"`` lists of ids.
    """
    if isinstance(raw, ActivityRecord):
        return raw
    if isinstance(raw, Mapping):
        preds = raw.get("predecessor_ids", raw.get("predecessors", ()))
        return ActivityRecord(raw["id"], raw.get("duration"), _predecessor_ids(preds))
    if isinstance(raw, (str, bytes)) or len(raw) not in (2, 3):
        raise TypeError(f"Cannot read an activity definition from {raw!r}.")
    preds = raw[2] if len(raw) == 3 else ()
    return ActivityRecord(raw[0], raw[1], _predecessor_ids(preds))


class GraphBuilder:
    """
    Assemble an ``ActivityGraph`` from raw activity definitions.

    All activities are created first, so records may list predecessors that
    appear later in the sequence. Every predecessor reference is checked
    before any link is made.
    """

    def __init__(self) -> None:
        self.records: List[ActivityRecord] = []

    def add(self, raw: RecordLike) -> GraphBuilder:
        self.records.append(to_record(raw))
        return self

    def extend(self, raws: Iterable[RecordLike]) -> GraphBuilder:
        for raw in raws:
            self.add(raw)
        return self

    def build(self, graph: Optional[ActivityGraph] = None) -> ActivityGraph:
        """
        Create the activities and wire their precedence links.

        When ``graph`` is given, the records are first applied to a copy of
        it; ``graph`` itself is only touched once they are known to fit.

        Raises:
            DuplicateId: two records share an id (or the id exists in ``graph``)
            UnknownActivity: a record names a predecessor that is not defined
            CycleDetected: the predecessor relation is circular
            InvalidDuration: a duration is negative or not an integer
        """
        if graph is None:
            return self._populate(ActivityGraph())

        scratch = ActivityGraph()
        for act in graph:
            scratch.add_activity(act.id, act.duration.value)
        for act in graph:
            for succ in act.successors:
                scratch.link(act.id, graph.at(succ).id)
        self._populate(scratch)
        return self._populate(graph)

    def _populate(self, graph: ActivityGraph) -> ActivityGraph:
        for record in self.records:
            graph.add_activity(record.id, record.duration)

        for record in self.records:
            for pred_id in record.predecessor_ids:
                if pred_id not in graph:
                    raise UnknownActivity(pred_id, referenced_by=record.id)

        for record in self.records:
            for pred_id in record.predecessor_ids:
                graph.link(pred_id, record.id)

        logger.debug("Built graph with %d activities", len(graph))
        return graph


def build_graph(records: Iterable[RecordLike]) -> ActivityGraph:
    """Shortcut for ``GraphBuilder().extend(records).build()``."""
    return GraphBuilder().extend(records).build()


def _split_predecessors(value: Any, ids_by_text: Mapping[str, ActivityId]) -> List[ActivityId]:
    if isinstance(value, str):
        tokens = [t.strip() for t in re.split(r"[;,]", value)]
        return [ids_by_text.get(t, t) for t in tokens if t and t not in {"-", "—"}]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    if _is_missing(value):
        return []
    raise TypeError(f"Cannot read predecessors from {value!r}.")


def records_from_dataframe(df: pd.DataFrame) -> List[ActivityRecord]:
    """
    Read activity definitions from a DataFrame.

    Expects ``ID`` and ``Duration`` columns; an optional ``Predecessors``
    column holds lists of ids or strings like ``"A;B"``.
    """
    missing = {"ID", "Duration"} - set(df.columns)
    if missing:
        raise ValueError(f"Missing required column(s): {', '.join(sorted(missing))}")

    ids = [_plain(v) for v in df["ID"]]
    ids_by_text = {str(act_id): act_id for act_id in ids}
    has_preds = "Predecessors" in df.columns

    records: List[ActivityRecord] = []
    for act_id, (_, row) in zip(ids, df.iterrows()):
        duration = None if _is_missing(row["Duration"]) else _plain(row["Duration"])
        if isinstance(duration, float) and duration.is_integer():
            duration = int(duration)
        preds = _split_predecessors(row["Predecessors"], ids_by_text) if has_preds else []
        records.append(ActivityRecord(act_id, duration, tuple(preds)))
    return records
