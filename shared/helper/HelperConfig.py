"""Environment based configuration for the document Q&A bridge."""

import os

from shared.logging.logging_setup import ColorLogger

TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Reads every setting from environment variables.

    Keys are case-insensitive (they are upper-cased before lookup) and an
    empty variable counts as unset. A missing variable without a default is
    a configuration error and raises ValueError.
    """

    def __init__(self, logger: ColorLogger) -> None:
        self._logger = logger

    @staticmethod
    def _read(key: str, default):
        raw = os.getenv(key.upper()) or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return raw.strip() if raw is not None else None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        raw = self._read(key, default)
        return raw if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int, or a float if the value contains a decimal point.

        Raises:
            ValueError: If the variable is unset without default or not numeric.
        """
        raw = self._read(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        raw = self._read(key, default)
        if raw is None:
            return default
        return raw.lower() in TRUE_VALUES

    def get_choice_val(self, key: str, choices: list[str], default: str | None = None) -> str:
        """Read a value restricted to choices, compared case-insensitively.

        Returns:
            str: The matching entry of choices, in its declared spelling.

        Raises:
            ValueError: If the variable is unset without default or not one of choices.
        """
        raw = self.get_string_val(key, default=default)
        by_lower = {choice.lower(): choice for choice in choices}
        if raw.lower() not in by_lower:
            raise ValueError(f"Environment variable '{key.upper()}' must be one of {choices}. Got: '{raw}'")
        return by_lower[raw.lower()]

    def get_logger(self) -> ColorLogger:
        return self._logger
