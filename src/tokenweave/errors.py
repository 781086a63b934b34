"""
Exception hierarchy for tokenweave.

Every failure raised by the resolution pipeline derives from
TokenweaveError so callers can catch one type per build. Error messages
embed the offending pointer, token name, or cycle chain; the same facts
are kept as attributes for programmatic dispatch.
"""

import pathlib as _pathlib
import typing as _typing


class TokenweaveError(Exception):
    """Base class for all tokenweave errors."""


class ConfigurationError(TokenweaveError):
    """A resolver document or modifier input is malformed."""


class ModifierError(ConfigurationError):
    """An unknown modifier or context was supplied as input."""

    def __init__(
        self,
        modifier_name: str,
        context_value: str | None = None,
        available: list[str] | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        self.modifier_name = modifier_name
        self.context_value = context_value
        self.available = list(available or [])
        self.suggestions = list(suggestions or [])

        hint = f" Available: {', '.join(self.available)}." if self.available else ""
        hint += format_suggestions(self.suggestions)
        if context_value:
            message = (
                f"Modifier validation failed: '{modifier_name}'. "
                f"Invalid context '{context_value}'.{hint}"
            )
        else:
            message = (
                f"Modifier validation failed: '{modifier_name}'. "
                f"Modifier not defined in resolver.{hint}"
            )
        super().__init__(message)


class ReferenceResolutionError(TokenweaveError):
    """A $ref pointer could not be followed or points somewhere forbidden."""

    def __init__(self, reference: str, message: str) -> None:
        self.reference = reference
        super().__init__(message)


class ForbiddenReferenceError(ReferenceResolutionError):
    """A $ref points into a region of the resolver document it may not target."""


class ValidationError(TokenweaveError):
    """A document failed a structural or semantic check."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, _typing.Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors if errors is not None else [{"message": message}]


class CircularReferenceError(TokenweaveError):
    """A reference chain (alias, $ref or $extends) loops back on itself."""

    def __init__(self, token_name: str, reference_path: list[str]) -> None:
        self.token_name = token_name
        self.reference_path = list(reference_path)
        chain = " -> ".join([*self.reference_path, token_name])
        super().__init__(
            f"Token resolution failed: '{token_name}'. "
            f"Circular reference detected in path: {chain}"
        )


class TokenReferenceError(TokenweaveError):
    """An alias target does not exist, or its $type contradicts the alias."""

    def __init__(
        self,
        reference_name: str,
        suggestions: list[str] | None = None,
        message: str | None = None,
    ) -> None:
        self.reference_name = reference_name
        self.suggestions = list(suggestions or [])
        super().__init__(
            message
            or (
                f"Token reference resolution failed: '{reference_name}'. "
                f"Token does not exist.{format_suggestions(self.suggestions)}"
            )
        )


class FileOperationError(TokenweaveError):
    """A referenced document could not be read or parsed."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Failed to read file {path}: {message}")


def format_suggestions(suggestions: list[str]) -> str:
    """
    Render a "did you mean" hint for an error message.

    Args:
        suggestions: Candidate names, closest first.

    Returns:
        A sentence starting with a space, or "" when there is nothing to offer.
    """
    if not suggestions:
        return ""
    quoted = [f'"{s}"' for s in suggestions]
    if len(quoted) == 1:
        return f" Did you mean {quoted[0]}?"
    return f" Did you mean {', '.join(quoted[:-1])} or {quoted[-1]}?"
