import re
from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


class CacheClientInterface(ABC):
    """Base class of key/value cache engines.

    Values are strings, every write carries a TTL in seconds. Engines raise
    CacheUnavailable for any backend failure (connection refused, timeout,
    protocol error) so callers can degrade without knowing the engine.

    Key patterns use Redis glob syntax (*, ?, [...] and backslash escapes)
    for every engine.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the engine are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the engine. E.g. "Redis"
        """
        pass

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of an engine specific configuration key (CACHE_<ENGINE>_<KEY>).

        Args:
            raw_key (str): The raw configuration key name, e.g. "HOST"
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool")
        """
        key = f"CACHE_{self.get_engine_name().upper()}_{raw_key.upper()}"
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in cache engine '{self.get_engine_name()}'.")

    @staticmethod
    def escape_pattern(value: str) -> str:
        """Escape glob metacharacters so value matches itself literally in a key pattern."""
        return _GLOB_SPECIAL.sub(r"\\\1", value)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open the connection to the backend, if the engine has one."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at key, None if absent or expired.

        Raises:
            CacheUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value at key, expiring after ttl seconds.

        Raises:
            CacheUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def delete(self, keys: list[str]) -> int:
        """Delete the given keys.

        Returns:
            int: The number of keys that existed and were removed.

        Raises:
            CacheUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def scan_keys(self, pattern: str) -> list[str]:
        """Return all live keys matching a glob pattern.

        Raises:
            CacheUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def stats(self) -> dict:
        """Return backend statistics.

        Returns:
            dict: {"total_keys": int, "memory_usage": str}

        Raises:
            CacheUnavailable: If the backend cannot be reached.
        """
        pass
