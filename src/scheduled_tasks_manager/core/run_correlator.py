# scheduled_tasks_manager/core/run_correlator.py
"""Rebuilds task runs from a flat batch of Task Scheduler event records.

Records that share a correlation token (the event's ActivityID) belong to the
same run. Some event kinds never carry a token; those are attached to the run
whose record-id window encloses them, unless strict mode is requested. This
heuristic assumes the uncorrelated records of two different runs never
interleave inside one run's window.

Runs are yielded newest first. The record id, not the delivery order or the
timestamp, decides which run is newest.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from scheduled_tasks_manager.core.models import EventRecord, TaskRun
from scheduled_tasks_manager.core.result_codes import translate_result_code
from scheduled_tasks_manager.error import UserInputError

logger = logging.getLogger(__name__)

RESULT_CODE_FIELD = "ResultCode"
LAUNCH_IGNORED_DISPLAY_NAME = "Launch request ignored, instance already running"


def _validate_record(record: object) -> Optional[str]:
    """Returns why a record cannot be used, or None if it is usable."""
    if not isinstance(record, EventRecord):
        return f"unexpected record type {type(record).__name__}"
    if not isinstance(record.record_id, int) or isinstance(record.record_id, bool):
        return "missing or invalid record id"
    if not isinstance(record.time_created, datetime):
        return "missing or invalid creation time"
    if not isinstance(record.named_fields, Mapping):
        return "named fields are not a mapping"
    return None


def _usable_records(task_name: str, events: Iterable[EventRecord]) -> List[EventRecord]:
    """Drops malformed and duplicate records, logging each one skipped."""
    usable: List[EventRecord] = []
    seen_ids = set()
    for record in events:
        problem = _validate_record(record)
        if problem:
            logger.warning(
                f"Skipping malformed event record for task '{task_name}': {problem} ({record!r})."
            )
            continue
        if record.record_id in seen_ids:
            logger.debug(
                f"Ignoring duplicate event record {record.record_id} for task '{task_name}'."
            )
            continue
        seen_ids.add(record.record_id)
        usable.append(record)
    return usable


def _newest_first(records: Iterable[EventRecord]) -> List[EventRecord]:
    return sorted(records, key=lambda r: r.record_id, reverse=True)


def _collect_result_codes(members: List[EventRecord]) -> List[str]:
    codes: List[str] = []
    for record in members:
        value = record.named_fields.get(RESULT_CODE_FIELD)
        if value is None:
            continue
        value = str(value).strip()
        if value and value not in codes:
            codes.append(value)
    return codes


def _build_run(
    task_name: str,
    correlation_id: str,
    members: List[EventRecord],
    uncorrelated: List[EventRecord],
    absorb_uncorrelated: bool,
) -> TaskRun:
    members = _newest_first(members)
    newest, oldest = members[0], members[-1]
    start_time, end_time = oldest.time_created, newest.time_created
    if start_time > end_time:
        logger.warning(
            f"Run {correlation_id} of task '{task_name}': record {oldest.record_id} is "
            f"timestamped after record {newest.record_id}; using the earlier time as the start."
        )
        start_time, end_time = end_time, start_time

    if absorb_uncorrelated:
        absorbed = [
            record
            for record in uncorrelated
            if oldest.record_id < record.record_id < newest.record_id
        ]
        if absorbed:
            logger.debug(
                f"Run {correlation_id}: absorbed {len(absorbed)} uncorrelated record(s) "
                f"between ids {oldest.record_id} and {newest.record_id}."
            )
            members = members + absorbed

    members.sort(key=lambda r: (r.time_created, r.record_id), reverse=True)

    result_codes = _collect_result_codes(members)
    if len(result_codes) > 1:
        logger.warning(
            f"Run {correlation_id} of task '{task_name}' reported several result codes: "
            f"{', '.join(result_codes)}."
        )
    translation = translate_result_code(result_codes[0]) if result_codes else None

    launch_ignored = any(
        record.display_name == LAUNCH_IGNORED_DISPLAY_NAME for record in members
    )

    return TaskRun(
        task_name=task_name,
        correlation_id=correlation_id,
        start_time=start_time,
        end_time=end_time,
        events=tuple(members),
        result_codes=tuple(result_codes),
        result_translation=translation,
        launch_request_ignored=launch_ignored,
    )


def _correlate(
    task_name: str,
    events: Iterable[EventRecord],
    max_runs: Optional[int],
    absorb_uncorrelated: bool,
) -> Iterator[TaskRun]:
    records = _usable_records(task_name, events)
    if not records:
        logger.debug(f"No usable event records for task '{task_name}'.")
        return

    # Group by token, remembering each run's newest record id for ordering.
    groups: Dict[str, List[EventRecord]] = {}
    uncorrelated: List[EventRecord] = []
    for record in records:
        if record.correlation_id is None:
            uncorrelated.append(record)
        else:
            groups.setdefault(record.correlation_id, []).append(record)

    ordered_ids = sorted(
        groups,
        key=lambda cid: max(r.record_id for r in groups[cid]),
        reverse=True,
    )
    if max_runs is not None:
        ordered_ids = ordered_ids[:max_runs]

    logger.debug(
        f"Correlating {len(records)} record(s) for task '{task_name}' into "
        f"{len(ordered_ids)} run(s) ({len(uncorrelated)} uncorrelated)."
    )
    for correlation_id in ordered_ids:
        yield _build_run(
            task_name,
            correlation_id,
            groups[correlation_id],
            uncorrelated,
            absorb_uncorrelated,
        )


def correlate_task_runs(
    task_name: str,
    events: Iterable[EventRecord],
    max_runs: Optional[int] = None,
    absorb_uncorrelated: bool = True,
) -> Iterator[TaskRun]:
    """Groups a task's event records into runs, newest first.

    Args:
        task_name: The task the records belong to.
        events: The task's event records in any order.
        max_runs: Yield at most this many of the most recent runs.
        absorb_uncorrelated: Attach records without a correlation token to the
            run whose record-id window encloses them. Pass False for strict
            grouping by token only.

    Returns:
        A single-pass iterator of `TaskRun`. An empty batch yields nothing.

    Raises:
        UserInputError: If `max_runs` is not None or a positive integer.
    """
    if max_runs is not None and (
        not isinstance(max_runs, int) or isinstance(max_runs, bool) or max_runs < 1
    ):
        raise UserInputError(
            f"max_runs must be a positive integer, got {max_runs!r}."
        )
    return _correlate(task_name, events, max_runs, absorb_uncorrelated)
