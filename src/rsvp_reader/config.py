"""Library location and persisted reader settings."""

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from rsvp_reader.models.playback import ReaderSettings

log = logging.getLogger(__name__)

HOME_ENV_VAR = "RSVP_READER_HOME"
DEFAULT_HOME = Path.home() / ".rsvp_reader"
SETTINGS_FILE = "settings.json"


def library_root(override: Path | None = None) -> Path:
    """Resolve the library directory: explicit override, env var, then default."""
    if override is not None:
        return override.expanduser().resolve()
    env = os.environ.get(HOME_ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()
    return DEFAULT_HOME


def load_settings(root: Path) -> ReaderSettings:
    """Load settings from ``root``, falling back to defaults."""
    path = root / SETTINGS_FILE
    if not path.exists():
        return ReaderSettings()
    try:
        return ReaderSettings.model_validate_json(path.read_text())
    except (ValidationError, OSError) as e:
        log.warning(f"Ignoring invalid settings file {path}: {e}")
        return ReaderSettings()


def save_settings(root: Path, settings: ReaderSettings) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / SETTINGS_FILE).write_text(settings.model_dump_json(indent=2))


def update_settings(settings: ReaderSettings, key: str, value: str) -> ReaderSettings:
    """Return a copy of ``settings`` with one field set from a string value.

    Raises:
        KeyError: If ``key`` is not a settings field.
        ValueError: If ``value`` does not validate for that field.
    """
    if key not in ReaderSettings.model_fields:
        raise KeyError(key)
    data = settings.model_dump(mode="json")
    data[key] = value
    try:
        return ReaderSettings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid value for {key}: {value}") from e
