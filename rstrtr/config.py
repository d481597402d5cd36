import logging
from pathlib import Path
from typing import Any, Dict

import rstrtr.settings as default_settings

log = logging.getLogger(__name__)


class MergedSettings:
    """
    Merges the default settings with overrides given on the command line.

    Precedence, lowest first:
    1. Base values from `settings.py`.
    2. Overrides from the environment or a `.env` file (handled by `python-dotenv` in settings.py).
    3. Overrides passed to `override()`, typically from command-line flags.
    """

    def __init__(self) -> None:
        """Initializes the settings object by loading defaults."""
        self._load_defaults()

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings.py module as defaults."""
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def override(self, key: str, value: Any) -> None:
        """
        Overrides a single setting, coercing the new value to the type of the default.

        :param key: The upper-case setting name.
        :param value: The new value. Strings are converted to the default's type.
        :raises KeyError: If the setting does not exist.
        :raises ValueError: If the value cannot be converted.
        """
        if not hasattr(self, key):
            raise KeyError(f"Unknown setting '{key}'.")

        original_value = getattr(self, key)
        if isinstance(original_value, bool):
            new_value = value if isinstance(value, bool) else str(value).lower() in ('true', '1', 't', 'yes', 'y')
        elif isinstance(original_value, Path):
            new_value = Path(value)
        elif original_value is not None:
            try:
                new_value = type(original_value)(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Could not convert value '{value}' for key '{key}': {e}") from e
        else:
            new_value = value

        setattr(self, key, new_value)
        log.debug(f"Overridden setting: {key} = {new_value}")

    def as_dict(self) -> Dict[str, Any]:
        """Returns all settings as a dictionary."""
        return {key: getattr(self, key) for key in dir(self) if key.isupper()}
