# scheduled_tasks_manager/core/system/event_log.py
"""Reads scheduled task history from the Windows event log.

Records come either from a live `wevtutil qe` query against the Task
Scheduler operational log or from an XML file exported with
`wevtutil qe ... /f:RenderedXml > history.xml`. Both are parsed into
`EventRecord` objects for the run correlator.
"""

import os
import platform
import re
import shutil
import subprocess
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from scheduled_tasks_manager.config.const import TASK_SCHEDULER_LOG_NAME
from scheduled_tasks_manager.core.models import EventRecord
from scheduled_tasks_manager.error import (
    AppFileNotFoundError,
    CommandNotFoundError,
    EventLogError,
    FileOperationError,
    MissingArgumentError,
    SystemError,
    UserInputError,
)

logger = logging.getLogger(__name__)

# --- Constants ---
EVENT_NAMESPACE = "{http://schemas.microsoft.com/win/2004/08/events/event}"
TASK_NAME_FIELD = "TaskName"

_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
_SYSTEM_TIME_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$"
)


def parse_system_time(value: Optional[str]) -> Optional[datetime]:
    """Parses an event `SystemTime` attribute into an aware UTC-based datetime.

    Event timestamps carry up to seven fractional digits; anything beyond
    microseconds is truncated. A missing offset is treated as UTC.

    Returns:
        The parsed datetime, or None if the value is missing or malformed.
    """
    if not value:
        return None
    match = _SYSTEM_TIME_RE.match(value.strip())
    if not match:
        return None
    date_part, time_part, fraction, offset = match.groups()
    try:
        parsed = datetime.strptime(f"{date_part}T{time_part}", "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    if not offset or offset == "Z":
        tzinfo = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return parsed.replace(tzinfo=tzinfo)


def _find(element: ET.Element, path: str) -> Optional[ET.Element]:
    return element.find(path.replace("ns:", EVENT_NAMESPACE))


def _parse_event_element(event: ET.Element) -> EventRecord:
    """Converts one `<Event>` element into an `EventRecord`.

    Raises:
        ValueError: If the element lacks a usable record id or timestamp.
    """
    record_id_el = _find(event, "ns:System/ns:EventRecordID")
    if record_id_el is None or not (record_id_el.text or "").strip():
        raise ValueError("missing EventRecordID")
    record_id = int(record_id_el.text.strip())

    time_el = _find(event, "ns:System/ns:TimeCreated")
    time_created = parse_system_time(
        time_el.get("SystemTime") if time_el is not None else None
    )
    if time_created is None:
        raise ValueError("missing or malformed TimeCreated")

    correlation_el = _find(event, "ns:System/ns:Correlation")
    correlation_id = (
        correlation_el.get("ActivityID") if correlation_el is not None else None
    )

    event_id = None
    event_id_el = _find(event, "ns:System/ns:EventID")
    if event_id_el is not None and (event_id_el.text or "").strip().isdigit():
        event_id = int(event_id_el.text.strip())

    named_fields = {}
    event_data = _find(event, "ns:EventData")
    if event_data is not None:
        for data in event_data.findall(f"{EVENT_NAMESPACE}Data"):
            name = data.get("Name")
            if name:
                named_fields[name] = (data.text or "").strip()

    display_name = ""
    task_el = _find(event, "ns:RenderingInfo/ns:Task")
    if task_el is not None and task_el.text:
        display_name = task_el.text.strip()

    return EventRecord(
        record_id=record_id,
        time_created=time_created,
        correlation_id=correlation_id,
        display_name=display_name,
        named_fields=named_fields,
        event_id=event_id,
        task_name=named_fields.get(TASK_NAME_FIELD) or None,
    )


def parse_event_xml(xml_text: str) -> List[EventRecord]:
    """Parses `wevtutil` XML output into event records.

    Accepts the bare sequence of `<Event>` elements that `wevtutil qe` prints
    as well as a document already wrapped in an `<Events>` root. Events that
    cannot be interpreted are skipped with a warning.

    Args:
        xml_text: The XML text.

    Returns:
        The parsed records, in document order.

    Raises:
        EventLogError: If the text is not well-formed XML.
    """
    if xml_text.startswith("\ufeff"):
        xml_text = xml_text[1:]
    xml_text = _XML_DECLARATION_RE.sub("", xml_text, count=1).strip()
    if not xml_text:
        return []
    if not xml_text.startswith("<Events"):
        xml_text = f"<Events>{xml_text}</Events>"

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as parse_err:
        logger.error(f"Error parsing event log XML: {parse_err}")
        logger.debug(f"XML content that failed parsing:\n{xml_text[:500]}...")
        raise EventLogError(f"Could not parse event log XML: {parse_err}") from parse_err

    records: List[EventRecord] = []
    for event in root.iter(f"{EVENT_NAMESPACE}Event"):
        try:
            records.append(_parse_event_element(event))
        except ValueError as e:
            logger.warning(f"Skipping unreadable event in log XML: {e}")
    logger.debug(f"Parsed {len(records)} event record(s) from log XML.")
    return records


def load_events_file(file_path: str) -> List[EventRecord]:
    """Loads event records from an exported `wevtutil` XML file.

    Raises:
        AppFileNotFoundError: If the file does not exist.
        FileOperationError: If the file cannot be read.
        EventLogError: If the file is not well-formed XML.
    """
    if not os.path.isfile(file_path):
        raise AppFileNotFoundError(file_path, "Event log export")
    logger.debug(f"Reading event log export '{file_path}'.")
    try:
        with open(file_path, "r", encoding="utf-8-sig", errors="replace") as f:
            xml_text = f.read()
    except OSError as e:
        raise FileOperationError(
            f"Could not read event log export '{file_path}': {e}"
        ) from e
    return parse_event_xml(xml_text)


def normalize_task_path(task_name: str) -> str:
    """Returns a task path in the form the event log records it (`\\Folder\\Task`)."""
    return "\\" + task_name.strip().lstrip("\\")


def filter_task_events(
    records: Iterable[EventRecord], task_name: str
) -> List[EventRecord]:
    """Keeps only the records logged for `task_name`.

    Matching ignores case and an optional leading backslash. Records without
    a task name are dropped since they cannot be attributed.
    """
    wanted = normalize_task_path(task_name).lower()
    kept = [
        record
        for record in records
        if record.task_name and normalize_task_path(record.task_name).lower() == wanted
    ]
    logger.debug(f"{len(kept)} event record(s) belong to task '{task_name}'.")
    return kept


def build_task_query(task_name: str) -> str:
    """Builds the XPath filter selecting a task's events in the operational log.

    Raises:
        UserInputError: If the name contains both quote characters.
    """
    task_path = normalize_task_path(task_name)
    if "'" not in task_path:
        literal = f"'{task_path}'"
    elif '"' not in task_path:
        literal = f'"{task_path}"'
    else:
        raise UserInputError(
            f"Task name cannot contain both quote characters: {task_name}"
        )
    return f"*[EventData[Data[@Name='{TASK_NAME_FIELD}']={literal}]]"


def query_task_events(
    task_name: str,
    max_events: int = 500,
    log_name: str = TASK_SCHEDULER_LOG_NAME,
) -> List[EventRecord]:
    """Queries the Task Scheduler operational log for a task's recent events.

    Uses `wevtutil qe` with a task-name filter, newest events first.

    Args:
        task_name: The task path, e.g. `\\MyFolder\\MyTask`.
        max_events: The maximum number of events to fetch.
        log_name: The event log to query.

    Returns:
        The task's event records.

    Raises:
        MissingArgumentError: If `task_name` is empty.
        SystemError: If not running on Windows.
        CommandNotFoundError: If `wevtutil` is not found.
        EventLogError: If the query fails or returns unparseable output.
    """
    if not task_name:
        raise MissingArgumentError("Task name cannot be empty.")
    if platform.system() != "Windows":
        raise SystemError("Reading the task event log is only supported on Windows.")

    wevtutil_cmd = shutil.which("wevtutil")
    if not wevtutil_cmd:
        logger.error("'wevtutil' command not found. Cannot query the event log.")
        raise CommandNotFoundError("wevtutil")

    command = [
        wevtutil_cmd,
        "qe",
        log_name,
        f"/q:{build_task_query(task_name)}",
        "/rd:true",
        f"/c:{int(max_events)}",
        "/f:RenderedXml",
    ]
    logger.debug(f"Querying event log '{log_name}' for task '{task_name}'.")
    try:
        process = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=False,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        logger.error("'wevtutil' command not found unexpectedly during query.")
        raise CommandNotFoundError("wevtutil")

    if process.returncode != 0:
        error_msg = (
            f"Error running 'wevtutil qe' for task '{task_name}'. "
            f"Return code: {process.returncode}. Error: {(process.stderr or '').strip()}"
        )
        logger.error(error_msg)
        raise EventLogError(error_msg)

    records = parse_event_xml(process.stdout or "")
    logger.info(f"Retrieved {len(records)} event record(s) for task '{task_name}'.")
    return filter_task_events(records, task_name)
