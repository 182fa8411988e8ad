# scheduled_tasks_manager/core/result_codes.py
"""Translates task result codes into human-readable diagnoses.

A completed task run reports a single 32-bit status value. The same bit
pattern can be a Task Scheduler constant, an HRESULT wrapping a Win32 error,
or a bare Win32 error code returned by the task's program. Rather than guess,
`translate_result_code` returns every interpretation that fits, ordered by
priority:

1. Task Scheduler table (`SCHED_S_*`, `SCHED_E_*` and common last-run results).
2. HRESULT decomposition; facility 7 codes are looked up in the Win32 table.
3. Direct Win32 lookup for values that fit in 16 bits.

If nothing matches, a single `Unknown` meaning is returned. Translation never
raises.
"""

import functools
import logging
import re
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple

from scheduled_tasks_manager.core.models import (
    ResultCodeMeaning,
    ResultCodeTranslation,
    ResultSource,
)

logger = logging.getLogger(__name__)

# --- HRESULT layout ---
SEVERITY_BIT = 0x80000000
FACILITY_MASK = 0x7FF
FACILITY_SHIFT = 16
CODE_MASK = 0xFFFF
FACILITY_WIN32 = 7

_UINT32_MOD = 1 << 32
_INT32_MIN = -(1 << 31)
_INT32_LIMIT = 1 << 31

_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")
_DECIMAL_RE = re.compile(r"^[+-]?[0-9]+$")
# 2**32 has ten decimal digits; longer text cannot be a 32-bit code.
_MAX_DECIMAL_DIGITS = 10

# Task Scheduler status codes, keyed by unsigned value: (constant, message).
TASK_SCHEDULER_CODES = MappingProxyType(
    {
        0x00041300: (
            "SCHED_S_TASK_READY",
            "The task is ready to run at its next scheduled time.",
        ),
        0x00041301: ("SCHED_S_TASK_RUNNING", "The task is currently running."),
        0x00041302: (
            "SCHED_S_TASK_DISABLED",
            "The task will not run at the scheduled times because it has been disabled.",
        ),
        0x00041303: ("SCHED_S_TASK_HAS_NOT_RUN", "The task has not yet run."),
        0x00041304: (
            "SCHED_S_TASK_NO_MORE_RUNS",
            "There are no more runs scheduled for this task.",
        ),
        0x00041305: (
            "SCHED_S_TASK_NOT_SCHEDULED",
            "One or more of the properties that are needed to run this task on a schedule have not been set.",
        ),
        0x00041306: (
            "SCHED_S_TASK_TERMINATED",
            "The last run of the task was terminated by the user.",
        ),
        0x00041307: (
            "SCHED_S_TASK_NO_VALID_TRIGGERS",
            "Either the task has no triggers or the existing triggers are disabled or not set.",
        ),
        0x00041308: (
            "SCHED_S_EVENT_TRIGGER",
            "Event triggers do not have set run times.",
        ),
        0x80041309: ("SCHED_E_TRIGGER_NOT_FOUND", "A task's trigger is not found."),
        0x8004130A: (
            "SCHED_E_TASK_NOT_READY",
            "One or more of the properties required to run this task have not been set.",
        ),
        0x8004130B: (
            "SCHED_E_TASK_NOT_RUNNING",
            "There is no running instance of the task.",
        ),
        0x8004130C: (
            "SCHED_E_SERVICE_NOT_INSTALLED",
            "The Task Scheduler service is not installed on this computer.",
        ),
        0x8004130D: ("SCHED_E_CANNOT_OPEN_TASK", "The task object could not be opened."),
        0x8004130E: (
            "SCHED_E_INVALID_TASK",
            "The object is either an invalid task object or is not a task object.",
        ),
        0x8004130F: (
            "SCHED_E_ACCOUNT_INFORMATION_NOT_SET",
            "No account information could be found in the Task Scheduler security database for the task indicated.",
        ),
        0x80041310: (
            "SCHED_E_ACCOUNT_NAME_NOT_FOUND",
            "Unable to establish existence of the account specified.",
        ),
        0x80041311: (
            "SCHED_E_ACCOUNT_DBASE_CORRUPT",
            "Corruption was detected in the Task Scheduler security database; the database has been reset.",
        ),
        0x80041312: (
            "SCHED_E_NO_SECURITY_SERVICES",
            "Task Scheduler security services are available only on Windows NT.",
        ),
        0x80041313: (
            "SCHED_E_UNKNOWN_OBJECT_VERSION",
            "The task object version is either unsupported or invalid.",
        ),
        0x80041314: (
            "SCHED_E_UNSUPPORTED_ACCOUNT_OPTION",
            "The task has been configured with an unsupported combination of account settings and run time options.",
        ),
        0x80041315: (
            "SCHED_E_SERVICE_NOT_RUNNING",
            "The Task Scheduler Service is not running.",
        ),
        0x80041316: (
            "SCHED_E_UNEXPECTEDNODE",
            "The task XML contains an unexpected node.",
        ),
        0x80041317: (
            "SCHED_E_NAMESPACE",
            "The task XML contains an element or attribute from an unexpected namespace.",
        ),
        0x80041318: (
            "SCHED_E_INVALIDVALUE",
            "The task XML contains a value which is incorrectly formatted or out of range.",
        ),
        0x80041319: (
            "SCHED_E_MISSINGNODE",
            "The task XML is missing a required element or attribute.",
        ),
        0x8004131A: ("SCHED_E_MALFORMEDXML", "The task XML is malformed."),
        0x0004131B: (
            "SCHED_S_SOME_TRIGGERS_FAILED",
            "The task is registered, but not all specified triggers will start the task.",
        ),
        0x0004131C: (
            "SCHED_S_BATCH_LOGON_PROBLEM",
            "The task is registered, but may fail to start. Batch logon privilege needs to be enabled for the task principal.",
        ),
        0x8004131D: (
            "SCHED_E_TOO_MANY_NODES",
            "The task XML contains too many nodes of the same type.",
        ),
        0x8004131E: (
            "SCHED_E_PAST_END_BOUNDARY",
            "The task cannot be started after the trigger end boundary.",
        ),
        0x8004131F: (
            "SCHED_E_ALREADY_RUNNING",
            "An instance of this task is already running.",
        ),
        0x80041320: (
            "SCHED_E_USER_NOT_LOGGED_ON",
            "The task will not run because the user is not logged on.",
        ),
        0x80041321: (
            "SCHED_E_INVALID_TASK_HASH",
            "The task image is corrupt or has been tampered with.",
        ),
        0x80041322: (
            "SCHED_E_SERVICE_NOT_AVAILABLE",
            "The Task Scheduler service is not available.",
        ),
        0x80041323: (
            "SCHED_E_SERVICE_TOO_BUSY",
            "The Task Scheduler service is too busy to handle your request. Please try again later.",
        ),
        0x80041324: (
            "SCHED_E_TASK_ATTEMPTED",
            "The Task Scheduler service attempted to run the task, but the task did not run due to one of the constraints in the task definition.",
        ),
        0x00041325: (
            "SCHED_S_TASK_QUEUED",
            "The Task Scheduler service has asked the task to run.",
        ),
        0x80041326: ("SCHED_E_TASK_DISABLED", "The task is disabled."),
        0x80041327: (
            "SCHED_E_TASK_NOT_V1_COMPAT",
            "The task has properties that are not compatible with earlier versions of Windows.",
        ),
        0x80041328: (
            "SCHED_E_START_ON_DEMAND",
            "The task settings do not allow the task to start on demand.",
        ),
        0x80041329: (
            "SCHED_E_TASK_NOT_UBPM_COMPAT",
            "The combination of properties that task is using is not compatible with the scheduling engine.",
        ),
        0x80041330: (
            "SCHED_E_DEPRECATED_FEATURE_USED",
            "The task definition uses a deprecated feature.",
        ),
        # Last-run results commonly reported for task actions.
        0x80070002: (
            "ERROR_FILE_NOT_FOUND",
            "The program or working directory of the task action could not be found.",
        ),
        0x800704DD: (
            "ERROR_NOT_LOGGED_ON",
            "The task could not start because the user is not logged on "
            "(is 'Run only when user is logged on' selected?).",
        ),
        0x800710E0: (
            "ERROR_REQUEST_REFUSED",
            "The operator or administrator has refused the request "
            "(the task may be restricted to run only when the user is logged on).",
        ),
        0xC000013A: (
            "STATUS_CONTROL_C_EXIT",
            "The application terminated as a result of a CTRL+C.",
        ),
        0xC0000142: (
            "STATUS_DLL_INIT_FAILED",
            "The application failed to initialize properly (often a desktop heap or session problem).",
        ),
        0xC06D007E: (
            "VCPPEXCEPTION_MOD_NOT_FOUND",
            "A module required by the task's program could not be loaded.",
        ),
    }
)

# Win32 error codes: (constant, message).
WIN32_ERROR_CODES = MappingProxyType(
    {
        0: ("ERROR_SUCCESS", "The operation completed successfully."),
        1: ("ERROR_INVALID_FUNCTION", "Incorrect function."),
        2: ("ERROR_FILE_NOT_FOUND", "The system cannot find the file specified."),
        3: ("ERROR_PATH_NOT_FOUND", "The system cannot find the path specified."),
        4: ("ERROR_TOO_MANY_OPEN_FILES", "The system cannot open the file."),
        5: ("ERROR_ACCESS_DENIED", "Access is denied."),
        6: ("ERROR_INVALID_HANDLE", "The handle is invalid."),
        8: (
            "ERROR_NOT_ENOUGH_MEMORY",
            "Not enough memory resources are available to process this command.",
        ),
        10: ("ERROR_BAD_ENVIRONMENT", "The environment is incorrect."),
        11: (
            "ERROR_BAD_FORMAT",
            "An attempt was made to load a program with an incorrect format.",
        ),
        13: ("ERROR_INVALID_DATA", "The data is invalid."),
        14: (
            "ERROR_OUTOFMEMORY",
            "Not enough memory resources are available to complete this operation.",
        ),
        15: ("ERROR_INVALID_DRIVE", "The system cannot find the drive specified."),
        21: ("ERROR_NOT_READY", "The device is not ready."),
        32: (
            "ERROR_SHARING_VIOLATION",
            "The process cannot access the file because it is being used by another process.",
        ),
        33: (
            "ERROR_LOCK_VIOLATION",
            "The process cannot access the file because another process has locked a portion of the file.",
        ),
        53: ("ERROR_BAD_NETPATH", "The network path was not found."),
        64: ("ERROR_NETNAME_DELETED", "The specified network name is no longer available."),
        67: ("ERROR_BAD_NET_NAME", "The network name cannot be found."),
        80: ("ERROR_FILE_EXISTS", "The file exists."),
        87: ("ERROR_INVALID_PARAMETER", "The parameter is incorrect."),
        109: ("ERROR_BROKEN_PIPE", "The pipe has been ended."),
        112: ("ERROR_DISK_FULL", "There is not enough space on the disk."),
        122: (
            "ERROR_INSUFFICIENT_BUFFER",
            "The data area passed to a system call is too small.",
        ),
        123: (
            "ERROR_INVALID_NAME",
            "The filename, directory name, or volume label syntax is incorrect.",
        ),
        126: ("ERROR_MOD_NOT_FOUND", "The specified module could not be found."),
        127: ("ERROR_PROC_NOT_FOUND", "The specified procedure could not be found."),
        183: (
            "ERROR_ALREADY_EXISTS",
            "Cannot create a file when that file already exists.",
        ),
        193: ("ERROR_BAD_EXE_FORMAT", "The file is not a valid Win32 application."),
        206: ("ERROR_FILENAME_EXCED_RANGE", "The filename or extension is too long."),
        216: (
            "ERROR_EXE_MACHINE_TYPE_MISMATCH",
            "The image file is not compatible with the version of Windows you're running.",
        ),
        234: ("ERROR_MORE_DATA", "More data is available."),
        258: ("WAIT_TIMEOUT", "The wait operation timed out."),
        259: ("ERROR_NO_MORE_ITEMS", "No more data is available."),
        267: ("ERROR_DIRECTORY", "The directory name is invalid."),
        740: ("ERROR_ELEVATION_REQUIRED", "The requested operation requires elevation."),
        1053: (
            "ERROR_SERVICE_REQUEST_TIMEOUT",
            "The service did not respond to the start or control request in a timely fashion.",
        ),
        1056: (
            "ERROR_SERVICE_ALREADY_RUNNING",
            "An instance of the service is already running.",
        ),
        1060: (
            "ERROR_SERVICE_DOES_NOT_EXIST",
            "The specified service does not exist as an installed service.",
        ),
        1062: ("ERROR_SERVICE_NOT_ACTIVE", "The service has not been started."),
        1069: (
            "ERROR_SERVICE_LOGON_FAILED",
            "The service did not start due to a logon failure.",
        ),
        1115: ("ERROR_SHUTDOWN_IN_PROGRESS", "A system shutdown is in progress."),
        1155: (
            "ERROR_NO_ASSOCIATION",
            "No application is associated with the specified file for this operation.",
        ),
        1168: ("ERROR_NOT_FOUND", "Element not found."),
        1223: ("ERROR_CANCELLED", "The operation was canceled by the user."),
        1244: (
            "ERROR_NOT_AUTHENTICATED",
            "The operation being requested was not performed because the user has not been authenticated.",
        ),
        1245: (
            "ERROR_NOT_LOGGED_ON",
            "The operation being requested was not performed because the user has not logged on to the network.",
        ),
        1260: ("ERROR_ACCESS_DISABLED_BY_POLICY", "This program is blocked by group policy."),
        1314: (
            "ERROR_PRIVILEGE_NOT_HELD",
            "A required privilege is not held by the client.",
        ),
        1326: ("ERROR_LOGON_FAILURE", "The user name or password is incorrect."),
        1327: (
            "ERROR_ACCOUNT_RESTRICTION",
            "Account restrictions are preventing this user from signing in.",
        ),
        1328: (
            "ERROR_INVALID_LOGON_HOURS",
            "Your account has time restrictions that keep you from signing in right now.",
        ),
        1330: ("ERROR_PASSWORD_EXPIRED", "The password for this account has expired."),
        1331: (
            "ERROR_ACCOUNT_DISABLED",
            "This user can't sign in because this account is currently disabled.",
        ),
        1332: (
            "ERROR_NONE_MAPPED",
            "No mapping between account names and security IDs was done.",
        ),
        1385: (
            "ERROR_LOGON_TYPE_NOT_GRANTED",
            "Logon failure: the user has not been granted the requested logon type at this computer.",
        ),
        1450: (
            "ERROR_NO_SYSTEM_RESOURCES",
            "Insufficient system resources exist to complete the requested service.",
        ),
        1460: (
            "ERROR_TIMEOUT",
            "This operation returned because the timeout period expired.",
        ),
        1722: ("RPC_S_SERVER_UNAVAILABLE", "The RPC server is unavailable."),
        1792: (
            "ERROR_NETLOGON_NOT_STARTED",
            "An attempt was made to logon, but the network logon service was not started.",
        ),
        1907: (
            "ERROR_PASSWORD_MUST_CHANGE",
            "The user's password must be changed before signing in.",
        ),
        1909: (
            "ERROR_ACCOUNT_LOCKED_OUT",
            "The referenced account is currently locked out and may not be logged on to.",
        ),
        4320: (
            "ERROR_REQUEST_REFUSED",
            "The operator or administrator has refused the request.",
        ),
        5023: (
            "ERROR_INVALID_STATE",
            "The group or resource is not in the correct state to perform the requested operation.",
        ),
    }
)

FACILITY_NAMES = MappingProxyType(
    {
        0: "FACILITY_NULL",
        1: "FACILITY_RPC",
        2: "FACILITY_DISPATCH",
        3: "FACILITY_STORAGE",
        4: "FACILITY_ITF",
        7: "FACILITY_WIN32",
        8: "FACILITY_WINDOWS",
        9: "FACILITY_SECURITY",
        10: "FACILITY_CONTROL",
        11: "FACILITY_CERT",
        12: "FACILITY_INTERNET",
        13: "FACILITY_MEDIASERVER",
        14: "FACILITY_MSMQ",
        15: "FACILITY_SETUPAPI",
        16: "FACILITY_SCARD",
        17: "FACILITY_COMPLUS",
        19: "FACILITY_URT",
        25: "FACILITY_HTTP",
        32: "FACILITY_BACKGROUNDCOPY",
        33: "FACILITY_CONFIGURATION",
        36: "FACILITY_WINDOWSUPDATE",
        37: "FACILITY_DIRECTORYSERVICE",
        38: "FACILITY_GRAPHICS",
        39: "FACILITY_SHELL",
        48: "FACILITY_PLA",
        51: "FACILITY_WINRM",
        80: "FACILITY_WINDOWS_DEFENDER",
    }
)


def normalize_result_code(value: Any) -> Optional[int]:
    """Parses a status value into its canonical signed 32-bit form.

    Accepts signed or unsigned 32-bit integers, decimal text and `0x`/`0X`
    prefixed hex text. Surrounding whitespace is ignored.

    Returns:
        The signed 32-bit integer, or None if the value cannot be parsed or
        does not fit in 32 bits.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if _HEX_RE.match(text):
            number = int(text, 16)
        elif _DECIMAL_RE.match(text):
            if len(text.lstrip("+-").lstrip("0")) > _MAX_DECIMAL_DIGITS:
                return None
            number = int(text, 10)
        else:
            return None
    else:
        return None

    if not _INT32_MIN <= number < _UINT32_MOD:
        return None
    return number - _UINT32_MOD if number >= _INT32_LIMIT else number


def to_unsigned(raw_code: int) -> int:
    """Returns the unsigned 32-bit bit pattern of a signed code."""
    return raw_code % _UINT32_MOD


def format_hex_code(raw_code: int) -> str:
    """Formats a code as `0x` followed by eight upper-case hex digits."""
    return f"0x{to_unsigned(raw_code):08X}"


def decode_hresult(raw_code: int) -> Tuple[bool, int, int]:
    """Splits a code into its HRESULT fields.

    Returns:
        A `(is_failure, facility, code)` tuple: the severity bit, the 11-bit
        facility and the low 16 bits.
    """
    unsigned = to_unsigned(raw_code)
    is_failure = bool(unsigned & SEVERITY_BIT)
    facility = (unsigned >> FACILITY_SHIFT) & FACILITY_MASK
    return is_failure, facility, unsigned & CODE_MASK


def facility_name(facility_code: int) -> str:
    """Returns the symbolic name of an HRESULT facility number."""
    return FACILITY_NAMES.get(facility_code, f"FACILITY_{facility_code}")


def _unknown_meaning(message: str, is_success: bool) -> ResultCodeMeaning:
    return ResultCodeMeaning(
        source=ResultSource.UNKNOWN, message=message, is_success=is_success
    )


@functools.lru_cache(maxsize=1024)
def _translate_canonical(raw_code: int) -> ResultCodeTranslation:
    unsigned = to_unsigned(raw_code)
    hex_code = format_hex_code(raw_code)
    meanings: List[ResultCodeMeaning] = []

    # Tier 1: Task Scheduler constants.
    scheduler_entry = TASK_SCHEDULER_CODES.get(unsigned)
    if scheduler_entry is not None:
        constant_name, message = scheduler_entry
        logger.debug(f"Result code {hex_code} matched Task Scheduler {constant_name}.")
        meanings.append(
            ResultCodeMeaning(
                source=ResultSource.TASK_SCHEDULER,
                message=message,
                constant_name=constant_name,
                is_success=not unsigned & SEVERITY_BIT,
            )
        )

    # Tier 2: HRESULT wrapping a Win32 error.
    is_failure, facility, code = decode_hresult(raw_code)
    if facility == FACILITY_WIN32:
        win32_entry = WIN32_ERROR_CODES.get(code)
        if win32_entry is not None:
            constant_name, message = win32_entry
            logger.debug(
                f"Result code {hex_code} decoded as HRESULT_FROM_WIN32({constant_name})."
            )
            meanings.append(
                ResultCodeMeaning(
                    source=ResultSource.WIN32,
                    message=message,
                    constant_name=constant_name,
                    is_success=not is_failure,
                    facility=facility_name(facility),
                    facility_code=facility,
                )
            )

    # Tier 3: bare Win32 error code.
    if scheduler_entry is None and 0 <= raw_code <= CODE_MASK:
        win32_entry = WIN32_ERROR_CODES.get(raw_code)
        if win32_entry is not None:
            constant_name, message = win32_entry
            logger.debug(f"Result code {hex_code} matched Win32 {constant_name}.")
            meanings.append(
                ResultCodeMeaning(
                    source=ResultSource.WIN32,
                    message=message,
                    constant_name=constant_name,
                    is_success=raw_code == 0,
                )
            )

    if not meanings:
        logger.debug(f"Result code {hex_code} did not match any known table.")
        meanings.append(
            _unknown_meaning(
                f"Unrecognized status code {hex_code} ({raw_code}).",
                is_success=raw_code == 0,
            )
        )

    return ResultCodeTranslation(
        raw_code=raw_code, hex_code=hex_code, meanings=tuple(meanings)
    )


def translate_result_code(value: Any) -> ResultCodeTranslation:
    """Translates a task status value into a structured diagnosis.

    Args:
        value: The status as an integer (signed or unsigned 32-bit), decimal
            text, or `0x`-prefixed hex text.

    Returns:
        A `ResultCodeTranslation` listing every matching interpretation in
        priority order. Values that cannot be parsed produce a translation
        with no raw code and a single `Unknown` meaning.
    """
    raw_code = normalize_result_code(value)
    if raw_code is None:
        logger.warning(f"Could not parse result code value {value!r}.")
        return ResultCodeTranslation(
            raw_code=None,
            hex_code=None,
            meanings=(
                _unknown_meaning(
                    f"Unrecognized status value {value!r}.", is_success=False
                ),
            ),
        )
    return _translate_canonical(raw_code)


def describe_meanings(translation: ResultCodeTranslation) -> List[Dict[str, Any]]:
    """Flattens a translation's meanings for tabular display."""
    return [
        {
            "rank": rank,
            "source": meaning.source.value,
            "constant_name": meaning.constant_name or "",
            "message": meaning.message,
            "is_success": meaning.is_success,
            "facility": meaning.facility or "",
        }
        for rank, meaning in enumerate(translation.meanings, start=1)
    ]
