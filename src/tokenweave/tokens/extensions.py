"""
Group inheritance (`$extends`) on raw token documents.

A group with `"$extends": "{base}"` (or `"#/base"`) starts from the fully
resolved `base` group and overlays its own entries:

- `$`-prefixed group properties override outright;
- where either side holds a token, the local entry replaces wholesale;
- where both sides hold groups, they merge recursively.

This merge is token-aware and is not the resolutionOrder merge used by the
resolution engine.
"""

import logging as _logging
import typing as _typing

import tokenweave.errors as errors
import tokenweave.resolution.pointer as pointer
import tokenweave.tokens.nodes as nodes

_logger = _logging.getLogger(__name__)

_EXTENDS_KEY = "$extends"


class GroupExtensionResolver:
    """
    Resolves and strips every `$extends` in a token document.

    Example:
        >>> resolver = GroupExtensionResolver()
        >>> resolver.resolve_extensions(
        ...     {"base": {"a": {"$value": 1}}, "derived": {"$extends": "{base}"}}
        ... )["derived"]
        {'a': {'$value': 1}}
    """

    def resolve_extensions(
        self, document: _typing.Mapping[str, _typing.Any]
    ) -> dict[str, _typing.Any]:
        """
        Return a new document with all group extensions applied.

        Raises:
            ValidationError: On malformed `$extends`, a missing target, a
                token target, or circular inheritance.
        """
        result: dict[str, _typing.Any] = {}
        for key, value in document.items():
            node = nodes.classify(value)
            if isinstance(node, nodes.GroupNode) and not key.startswith("$"):
                result[key] = self._resolve_group(node, [key], document, [])
            else:
                result[key] = value
        return result

    def _resolve_group(
        self,
        group: nodes.GroupNode,
        path: list[str],
        document: _typing.Mapping[str, _typing.Any],
        chain: list[str],
    ) -> dict[str, _typing.Any]:
        group_path = ".".join(path)
        if group_path in chain:
            cycle = " -> ".join([*chain, group_path])
            raise errors.ValidationError(
                f"Circular group extension detected: {cycle}. "
                f"Groups must not create circular inheritance chains.",
                [{"message": f"Circular group extension detected: {cycle}", "path": group_path}],
            )

        if group.extends is None:
            return self._resolve_children(group.data, path, document, chain)

        target_path = parse_group_reference(group.extends)
        target = _find(target_path, document)
        if target is None:
            message = (
                f"Group extension failed at \"{group_path}\": "
                f"Cannot find target group \"{target_path}\"."
            )
            raise errors.ValidationError(
                f"{message} Ensure the referenced group exists.",
                [{"message": message, "path": group_path}],
            )

        target_node = nodes.classify(target)
        if not isinstance(target_node, nodes.GroupNode):
            message = (
                f"Group extension failed at \"{group_path}\": "
                f"Target \"{target_path}\" is a token, not a group."
            )
            raise errors.ValidationError(
                f"{message} $extends can only reference groups.",
                [{"message": message, "path": group_path}],
            )

        _logger.debug("Group %s extends %s", group_path, target_path)
        resolved_target = self._resolve_group(
            target_node, target_path.split("."), document, [*chain, group_path]
        )
        merged = merge_groups(resolved_target, group.data)
        return self._resolve_children(merged, path, document, chain)

    def _resolve_children(
        self,
        group: _typing.Mapping[str, _typing.Any],
        path: list[str],
        document: _typing.Mapping[str, _typing.Any],
        chain: list[str],
    ) -> dict[str, _typing.Any]:
        result = dict(group)
        for key, value in nodes.GroupNode(group).children():
            child = nodes.classify(value)
            if isinstance(child, nodes.GroupNode):
                result[key] = self._resolve_group(child, [*path, key], document, chain)
        return result


def merge_groups(
    inherited: _typing.Mapping[str, _typing.Any],
    local: _typing.Mapping[str, _typing.Any],
) -> dict[str, _typing.Any]:
    """Overlay `local` on `inherited` with token-aware semantics. `$extends` is dropped."""
    result = {k: v for k, v in inherited.items() if k != _EXTENDS_KEY}

    for key, value in local.items():
        if key == _EXTENDS_KEY:
            continue
        if key.startswith("$") and key != "$root":
            result[key] = value
            continue

        inherited_value = inherited.get(key)
        if inherited_value is None:
            result[key] = value
            continue

        inherited_node = nodes.classify(inherited_value)
        local_node = nodes.classify(value)
        if isinstance(inherited_node, nodes.GroupNode) and isinstance(local_node, nodes.GroupNode):
            result[key] = merge_groups(inherited_node.data, local_node.data)
        else:
            result[key] = value

    return result


def parse_group_reference(ref: _typing.Any) -> str:
    """
    Convert a `$extends` value to a dotted group path.

    Accepts "{group.name}" and "#/group/name".

    Raises:
        ValidationError: For any other shape.
    """
    if isinstance(ref, str):
        if len(ref) > 2 and ref.startswith("{") and ref.endswith("}"):
            return ref[1:-1].strip()
        if ref.startswith("#/") and len(ref) > 2:
            return ".".join(pointer.split(ref))

    message = f"Invalid group reference format: {ref!r}."
    raise errors.ValidationError(
        f"{message} Use alias syntax \"{{group.name}}\" or JSON Pointer \"#/group/name\".",
        [{"message": message}],
    )


def _find(dotted: str, document: _typing.Mapping[str, _typing.Any]) -> _typing.Any:
    current: _typing.Any = document
    for part in dotted.split("."):
        if not isinstance(current, _typing.Mapping):
            return None
        current = current.get(part)
    return current
