# scheduled_tasks_manager/instances.py
_settings = None


def get_settings_instance():
    """
    Returns the process-wide Settings instance, creating it on first use.
    """
    global _settings
    if _settings is None:
        from .config.settings import Settings

        _settings = Settings()
    return _settings


def reset_settings_instance():
    """Drops the cached Settings so the next call reloads from disk."""
    global _settings
    _settings = None
