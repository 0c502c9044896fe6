"""Environment-backed settings for the docrag service.

Keys are case-insensitive and read on every call, so tests can change them
with monkeypatch. An empty variable counts as unset.
"""

import logging
import os


class HelperConfig:
    """Typed access to environment settings, plus the application logger."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @staticmethod
    def _read(key: str) -> str | None:
        val = os.getenv(key.upper()) or None
        return val.strip() if val is not None else None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        val = self._read(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return val if val is not None else default

    def get_optional_string_val(self, key: str) -> str | None:
        """Read a string environment variable that may legitimately be absent (e.g. API_SERVER_API_KEY)."""
        return self._read(key)

    def get_choice_val(self, key: str, choices: tuple[str, ...], default: str) -> str:
        """Read a lower-cased value that must be one of choices.

        Raises:
            ValueError: If the value is not one of choices.
        """
        val = self.get_string_val(key, default=default).lower()
        if val not in choices:
            raise ValueError(f"Environment variable '{key.upper()}' must be one of {', '.join(choices)}. Got: '{val}'")
        return val

    def get_number_val(
        self,
        key: str,
        default: float | int | None = None,
        min_val: float | None = None,
        max_val: float | None = None,
    ) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.
            min_val (float | None): Inclusive lower bound checked against set values.
            max_val (float | None): Inclusive upper bound checked against set values.

        Returns:
            float | int: An int unless the raw value contains a decimal point.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value is not a number or lies outside the bounds.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        try:
            val = int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")
        if (min_val is not None and val < min_val) or (max_val is not None and val > max_val):
            raise ValueError(f"Environment variable '{key.upper()}' must be within [{min_val}, {max_val}]. Got: {val}")
        return val

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable. "true", "1" and "yes" are true, anything else false.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list environment variable, e.g. API_SERVER_CORS_ORIGINS="[http://a,http://b]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value is not bracketed or an element cannot be cast.
        """
        raw_val = self._read(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")

        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_logger(self) -> logging.Logger:
        return self._logger
