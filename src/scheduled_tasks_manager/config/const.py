# scheduled_tasks_manager/config/const.py
from importlib.metadata import version, PackageNotFoundError

# --- Package Constants ---
package_name = "scheduled-tasks-manager"
app_name_title = package_name.replace("-", " ").title()
env_name = package_name.replace("-", "_").upper()
app_author = "scheduled-tasks-manager"

# --- Event Log Constants ---
TASK_SCHEDULER_LOG_NAME = "Microsoft-Windows-TaskScheduler/Operational"


def get_installed_version() -> str:
    try:
        installed_version = version(package_name)
        return installed_version
    except PackageNotFoundError:
        installed_version = "0.0.0"
        return installed_version
