"""
Modifier input processing.

Turns user-supplied inputs such as {"Theme": "DARK"} into a complete
Permutation in the document's declared casing ({"theme": "dark"}):

1. values must be strings;
2. names and contexts match case-insensitively;
3. unknown modifiers and contexts are reported with suggestions;
4. unsupplied modifiers take their default.
"""

import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import tokenweave.errors as errors
import tokenweave.resolution.types as types
import tokenweave.utils as utils
import tokenweave.utils.similarity as similarity
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class PreparedInputs:
    """Inputs after validation and default filling."""

    permutation: types.Permutation
    """One entry per declared modifier, declared casing, declaration order."""

    supplied: frozenset[str]
    """Declared names of the modifiers the caller supplied explicitly."""


class ModifierInputProcessor:
    """
    Validates, normalizes, and completes modifier inputs.

    Args:
        document: The parsed resolver document.
        validation_handler: Reports invalid inputs.
        error_on_missing_default: Whether a required modifier that has no
            default and no input is an error. None follows the validation
            mode ("error" raises).
    """

    def __init__(
        self,
        document: types.ResolverDocument,
        validation_handler: validation.ValidationHandler | None = None,
        *,
        error_on_missing_default: bool | None = None,
    ) -> None:
        self._document = document
        self._validation = validation_handler or validation.ValidationHandler()
        self._error_on_missing_default = error_on_missing_default
        self._modifiers: utils.CaseInsensitiveDict[types.Modifier] = utils.CaseInsensitiveDict(
            document.all_modifiers
        )
        self._required = {
            entry.target_name
            for entry in document.resolution_order
            if entry.target_kind == "modifier"
        }

    def prepare(self, inputs: _typing.Mapping[str, _typing.Any]) -> PreparedInputs:
        """
        Build the permutation for `inputs`.

        Raises:
            ConfigurationError: A non-string value, or a missing input for a
                required modifier without a default (strict mode).
            ModifierError: Unknown modifier or context (per validation mode).
        """
        selected: dict[str, str] = {}

        for key, value in inputs.items():
            if not isinstance(value, str):
                if self._validation.should_validate():
                    self._validation.handle_issue(
                        errors.ConfigurationError(
                            f"Invalid input type for modifier \"{key}\". "
                            f"Expected string but got {type(value).__name__}. "
                            f"All modifier inputs must be strings "
                            f"(e.g. {{\"beta\": \"true\"}} not {{\"beta\": true}})."
                        )
                    )
                continue

            name = self._modifiers.original_key(key)
            if name is None:
                self._report(
                    errors.ModifierError(
                        key,
                        suggestions=similarity.find_similar(key, self._modifiers.keys()),
                    )
                )
                continue

            contexts = utils.CaseInsensitiveDict(self._modifiers[name].contexts)
            context = contexts.original_key(value)
            if context is None:
                self._report(
                    errors.ModifierError(
                        name,
                        value,
                        available=contexts.keys(),
                        suggestions=similarity.find_similar(value, contexts.keys()),
                    )
                )
                continue
            selected[name] = context

        permutation: types.Permutation = {}
        for name, modifier in self._document.all_modifiers.items():
            if name in selected:
                permutation[name] = selected[name]
            else:
                permutation[name] = self._default_for(name, modifier)

        return PreparedInputs(permutation, frozenset(selected))

    def _default_for(self, name: str, modifier: types.Modifier) -> str:
        if modifier.default is not None:
            return modifier.default

        first = next(iter(modifier.contexts), None)
        if first is None:
            raise errors.ConfigurationError(f"Modifier \"{name}\" declares no contexts")

        if name in self._required:
            if self._strict_missing_default():
                raise errors.ConfigurationError(
                    f"No default value for modifier: {name}. "
                    f"Supply an input for it or declare a default."
                )
            self._validation.warn(
                f"Missing modifier input for \"{name}\". Using first context \"{first}\"."
            )
        else:
            _logger.debug("Modifier %s is not in resolutionOrder; using %s", name, first)
        return first

    def _strict_missing_default(self) -> bool:
        if self._error_on_missing_default is not None:
            return self._error_on_missing_default
        return self._validation.is_strict()

    def _report(self, error: errors.ModifierError) -> None:
        # Invalid entries are dropped once reported; the default applies instead.
        if self._validation.should_validate():
            self._validation.handle_issue(error)
