"""
Validation mode handling shared by every resolver component.

Components never decide on their own whether a problem is fatal. They
report it to a ValidationHandler, which raises in "error" mode, forwards
the message to a warning callback in "warn" mode, and stays silent in
"off" mode.
"""

import logging as _logging
import typing as _typing

_logger = _logging.getLogger(__name__)

ValidationMode = _typing.Literal["error", "warn", "off"]
WarningCallback = _typing.Callable[[str], None]


def _log_warning(message: str) -> None:
    _logger.warning("%s", message)


class ValidationHandler:
    """
    Dispatch validation issues according to a validation mode.

    Example:
        >>> handler = ValidationHandler("warn", on_warning=print)
        >>> handler.handle_issue(ValueError("bad name"))
        bad name
    """

    def __init__(
        self,
        mode: ValidationMode = "error",
        on_warning: WarningCallback | None = None,
    ) -> None:
        if mode not in ("error", "warn", "off"):
            raise ValueError(f"Unknown validation mode: {mode!r}")
        self._mode: ValidationMode = mode
        self._on_warning = on_warning or _log_warning

    @property
    def mode(self) -> ValidationMode:
        """The active validation mode."""
        return self._mode

    def should_validate(self) -> bool:
        """Whether validation checks should run at all."""
        return self._mode != "off"

    def is_strict(self) -> bool:
        """Whether issues are raised rather than reported."""
        return self._mode == "error"

    def handle_issue(self, error: Exception) -> None:
        """
        Raise, warn about, or ignore an issue.

        Args:
            error: The exception describing the issue.

        Raises:
            Exception: The given error, in "error" mode.
        """
        if self._mode == "error":
            raise error
        if self._mode == "warn":
            self._on_warning(str(error))

    def warn(self, message: str) -> None:
        """Emit a warning unless validation is off."""
        if self._mode == "off":
            return
        self._on_warning(message)
