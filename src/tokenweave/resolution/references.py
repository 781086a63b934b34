"""
`$ref` resolution: JSON pointers and file references.

Two reference forms are supported:

- pointer references ("#/sets/base", "#/color/primary/$value"), resolved
  against a caller-supplied document one RFC 6901 segment at a time;
- file references ("tokens/base.json", "brand.yaml#/colors"), loaded from
  the resolver's base directory through a caller-owned FileCache.

Sibling keys of a reference object overlay the resolved value shallowly.

A ReferenceResolver keeps the chain of references currently being followed
to detect cycles, so one instance serves one resolution at a time. Share
the FileCache, not the resolver, between threads.
"""

import contextlib as _contextlib
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import tokenweave.constants as constants
import tokenweave.errors as errors
import tokenweave.resolution.file_cache as file_cache
import tokenweave.resolution.pointer as pointer
import tokenweave.tokens.nodes as nodes
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)

_VALUE_SUFFIX = "/$value"


def is_reference(value: _typing.Any) -> bool:
    """Whether `value` is a `{"$ref": "<string>", ...}` object."""
    return isinstance(value, _typing.Mapping) and isinstance(value.get("$ref"), str)


def check_pointer(ref: str, origin: str | None = None) -> None:
    """
    Reject pointers into forbidden regions of a resolver document.

    Nothing may point into `#/resolutionOrder`. Sources of a set or of a
    modifier context (`origin` is "set" or "modifier") must not point into
    `#/modifiers`.

    Raises:
        ForbiddenReferenceError: Always, regardless of validation mode.
    """
    if ref == constants.RESOLUTION_ORDER_POINTER_PREFIX or ref.startswith(
        constants.RESOLUTION_ORDER_POINTER_PREFIX + "/"
    ):
        raise errors.ForbiddenReferenceError(
            ref,
            f"Invalid reference: \"{ref}\". "
            f"References must not point to resolutionOrder array items.",
        )
    if origin in ("set", "modifier") and ref.startswith(constants.MODIFIERS_POINTER_PREFIX):
        raise errors.ForbiddenReferenceError(
            ref,
            f"Invalid reference: \"{ref}\". "
            f"Sets and modifier contexts must not reference modifiers.",
        )


class ReferenceResolver:
    """
    Resolves `$ref` pointers and file references into plain values.

    Args:
        base_dir: Directory for relative file references. Defaults to cwd.
        cache: Shared FileCache. A private one is created when omitted.
        validation_handler: Governs references embedded in token `$value`s
            and token-level type mismatches. Structural failures always raise.
    """

    def __init__(
        self,
        base_dir: _pathlib.Path | str | None = None,
        *,
        cache: file_cache.FileCache | None = None,
        validation_handler: validation.ValidationHandler | None = None,
    ) -> None:
        self._base_dir = _pathlib.Path(base_dir) if base_dir is not None else _pathlib.Path.cwd()
        self._cache = cache if cache is not None else file_cache.FileCache()
        self._validation = validation_handler or validation.ValidationHandler()
        self._chain: list[str] = []

    @property
    def base_dir(self) -> _pathlib.Path:
        return self._base_dir

    @property
    def cache(self) -> file_cache.FileCache:
        return self._cache

    # -------------------------------------------------------------------------
    # Single references
    # -------------------------------------------------------------------------

    def resolve(
        self,
        ref: str | _typing.Mapping[str, _typing.Any],
        document: _typing.Any = None,
    ) -> _typing.Any:
        """
        Resolve one reference.

        Args:
            ref: A reference string, or a reference object whose sibling
                keys override the resolved value.
            document: Root for "#/..." pointers.

        Returns:
            The referenced value, with overrides applied. The result may
            share structure with cached documents; do not mutate it.

        Raises:
            ReferenceResolutionError: Missing target or forbidden pointer.
            CircularReferenceError: The reference is already being followed.
            FileOperationError: A referenced file cannot be read or parsed.
        """
        ref_string, overrides = _split_reference(ref)
        with self._following(ref_string):
            return self._resolve_with_overrides(ref_string, overrides, document)

    def _resolve_with_overrides(
        self,
        ref_string: str,
        overrides: _typing.Mapping[str, _typing.Any],
        document: _typing.Any,
    ) -> _typing.Any:
        resolved = self._resolve_target(ref_string, document)
        if overrides and isinstance(resolved, _typing.Mapping):
            return {**resolved, **overrides}
        return resolved

    def _resolve_target(self, ref_string: str, document: _typing.Any) -> _typing.Any:
        check_pointer(ref_string)

        if ref_string.startswith("#"):
            if document is None:
                raise errors.ReferenceResolutionError(
                    ref_string,
                    f"Cannot resolve fragment reference {ref_string} without a document",
                )
            return pointer.resolve(document, ref_string)

        file_part, _, fragment = ref_string.partition("#")
        if not file_part:
            raise errors.ReferenceResolutionError(
                ref_string, f"Invalid reference: {ref_string!r}"
            )
        loaded = self._cache.load(self._file_path(file_part))
        if fragment:
            return pointer.resolve(loaded, "#" + fragment)
        return loaded

    def _file_path(self, file_part: str) -> _pathlib.Path:
        path = _pathlib.Path(file_part).expanduser()
        return path if path.is_absolute() else self._base_dir / path

    @_contextlib.contextmanager
    def _following(self, ref_string: str) -> _typing.Iterator[None]:
        if not ref_string:
            raise errors.ReferenceResolutionError(
                ref_string, "Invalid reference: missing $ref property"
            )
        if ref_string in self._chain:
            raise errors.CircularReferenceError(ref_string, self._chain)
        self._chain.append(ref_string)
        try:
            yield
        finally:
            self._chain.pop()

    # -------------------------------------------------------------------------
    # Whole trees
    # -------------------------------------------------------------------------

    def resolve_deep(self, tree: _typing.Any, root_document: _typing.Any = None) -> _typing.Any:
        """
        Replace every embedded reference in `tree`, recursively.

        References inside resolved content are followed too, so a chain
        that leads back to itself raises CircularReferenceError.
        """
        if is_reference(tree):
            ref_string, overrides = _split_reference(tree)
            with self._following(ref_string):
                resolved = self._resolve_with_overrides(ref_string, overrides, root_document)
                return self.resolve_deep(resolved, root_document)
        if isinstance(tree, _typing.Mapping):
            return {k: self.resolve_deep(v, root_document) for k, v in tree.items()}
        if isinstance(tree, list):
            return [self.resolve_deep(item, root_document) for item in tree]
        return tree

    def resolve_token_document(
        self, tree: _typing.Any, root_document: _typing.Any = None
    ) -> _typing.Any:
        """
        Resolve references in a token document, preserving token shape.

        - Inside `$value`, a reference object is replaced by the referenced
          content. In "warn" and "off" modes a failing one is left in place.
        - A token-level `{"$ref": ...}` becomes a token whose `$value` is the
          referenced token's value, inheriting its metadata and `$type`.
          Local keys next to `$ref` win. A declared `$type` that contradicts
          the referenced token's is a TokenReferenceError.
        """
        return self._resolve_token_tree(tree, root_document, in_value=False)

    def _resolve_token_tree(
        self, tree: _typing.Any, root_document: _typing.Any, *, in_value: bool
    ) -> _typing.Any:
        node = nodes.classify(tree, in_value=in_value)

        if isinstance(node, nodes.ReferenceNode):
            if in_value:
                return self._resolve_value_reference(tree, node, root_document)
            return self._resolve_token_level_ref(node, root_document)

        if isinstance(tree, _typing.Mapping):
            return {
                key: self._resolve_token_tree(
                    value, root_document, in_value=in_value or key == "$value"
                )
                for key, value in tree.items()
            }
        if isinstance(tree, list):
            return [
                self._resolve_token_tree(item, root_document, in_value=in_value)
                for item in tree
            ]
        return tree

    def _resolve_value_reference(
        self,
        original: _typing.Any,
        node: nodes.ReferenceNode,
        root_document: _typing.Any,
    ) -> _typing.Any:
        try:
            with self._following(node.ref):
                resolved = self._resolve_with_overrides(node.ref, node.overrides, root_document)
                return self._resolve_token_tree(resolved, root_document, in_value=True)
        except (errors.ReferenceResolutionError, errors.FileOperationError) as e:
            if isinstance(e, errors.ForbiddenReferenceError) or self._validation.is_strict():
                raise
            self._validation.warn(f"Unresolved reference {node.ref} left in place: {e}")
            return original

    def _resolve_token_level_ref(
        self, node: nodes.ReferenceNode, root_document: _typing.Any
    ) -> dict[str, _typing.Any]:
        with self._following(node.ref):
            resolved_raw = self._resolve_target(node.ref, root_document)
            referenced_type = self._referenced_type(node.ref, resolved_raw, root_document)

            resolved_node = nodes.classify(resolved_raw)
            if isinstance(resolved_node, nodes.TokenNode):
                base = {k: v for k, v in resolved_raw.items() if k != "$ref"}
                value = resolved_node.value
            else:
                base = {}
                value = resolved_raw

            resolved_value = self._resolve_token_tree(value, root_document, in_value=True)

        token = {**base, **node.overrides, "$value": resolved_value}
        return self._check_token_type(token, node.type, referenced_type, node.ref)

    def _referenced_type(
        self, ref_string: str, resolved_raw: _typing.Any, root_document: _typing.Any
    ) -> str | None:
        direct = _type_of(resolved_raw)
        if direct is not None:
            return direct
        # "#/color/primary/$value" names the token "#/color/primary".
        if ref_string.startswith("#/") and ref_string.endswith(_VALUE_SUFFIX):
            token_pointer = ref_string[: -len(_VALUE_SUFFIX)]
            if root_document is not None and pointer.contains(root_document, token_pointer):
                return _type_of(pointer.resolve(root_document, token_pointer))
        return None

    def _check_token_type(
        self,
        token: dict[str, _typing.Any],
        declared_type: str | None,
        referenced_type: str | None,
        ref_string: str,
    ) -> dict[str, _typing.Any]:
        if referenced_type is None:
            return token

        if declared_type is not None and declared_type != referenced_type:
            self._validation.handle_issue(
                errors.TokenReferenceError(
                    ref_string,
                    message=(
                        f"Token-level $ref type mismatch: declared \"$type\" is "
                        f"\"{declared_type}\" but referenced token type is "
                        f"\"{referenced_type}\" ({ref_string})"
                    ),
                )
            )
            return token

        if not isinstance(token.get("$type"), str):
            return {**token, "$type": referenced_type}
        return token


def _split_reference(
    ref: str | _typing.Mapping[str, _typing.Any],
) -> tuple[str, dict[str, _typing.Any]]:
    if isinstance(ref, str):
        return ref, {}
    ref_string = ref.get("$ref")
    if not isinstance(ref_string, str):
        raise errors.ReferenceResolutionError(
            "", "Invalid reference: missing $ref property"
        )
    return ref_string, {k: v for k, v in ref.items() if k != "$ref"}


def _type_of(value: _typing.Any) -> str | None:
    if isinstance(value, _typing.Mapping) and isinstance(value.get("$type"), str):
        return value["$type"]
    return None
