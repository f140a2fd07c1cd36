"""Locate, validate and follow ``$ref`` JSON Reference pointers.

Schema references (``#/definitions/<Name>`` in Swagger 2.0,
``#/components/schemas/<Name>`` in OpenAPI 3.x) are never inlined: the
parser keeps them as bare schema names so the dependency graph can follow
them later. Every other local reference (shared parameters, responses,
request bodies) is followed so the extractor sees real content.

Only **internal** references (``#/...``) are supported. External file or
URL references raise :class:`~oasync.exceptions.UnresolvedRefError`.

All walks are iterative and carry a visited set, so reference cycles
terminate.
"""

from __future__ import annotations

from typing import Any, Optional

from oasync.exceptions import CircularRefError, UnresolvedRefError

SCHEMA_REF_PREFIXES = ("#/definitions/", "#/components/schemas/")


def _unescape(segment: str) -> str:
    # RFC 6901: ~1 is "/", ~0 is "~"
    return segment.replace("~1", "/").replace("~0", "~")


def schema_name_from_ref(ref: str) -> Optional[str]:
    """Return the bare schema name for a schema reference, else ``None``.

    ``"#/components/schemas/Pet"`` and ``"#/definitions/Pet"`` both give
    ``"Pet"``. A pointer into a schema (``.../Pet/properties/id``) gives
    the owning schema's name.
    """
    for prefix in SCHEMA_REF_PREFIXES:
        if ref.startswith(prefix):
            remainder = ref[len(prefix):]
            if not remainder:
                return None
            return _unescape(remainder.split("/", 1)[0])
    return None


def resolve_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Return the value a local ``$ref`` points to inside *root*.

    Raises:
        UnresolvedRefError: If the reference is external, or any pointer
            segment does not exist in the document.
    """
    if not ref.startswith("#/"):
        raise UnresolvedRefError(ref, "external references are not supported")

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = _unescape(segment)
        if isinstance(current, dict):
            if segment not in current:
                raise UnresolvedRefError(ref, f"key '{segment}' not found")
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise UnresolvedRefError(ref, f"invalid array index '{segment}'") from exc
        else:
            raise UnresolvedRefError(
                ref, f"cannot navigate into {type(current).__name__}"
            )
    return current


def collect_refs(value: Any, root: dict[str, Any]) -> list[str]:
    """Collect the schema names referenced anywhere inside *value*.

    Objects and arrays are walked in full. Schema references are validated
    and recorded but not followed. Other local references are validated
    and their targets walked too, so a shared response that points at a
    schema contributes that schema name.

    Returns:
        Sorted, deduplicated schema names.

    Raises:
        UnresolvedRefError: For external or dangling references.
    """
    names: set[str] = set()
    followed: set[str] = set()
    stack: list[Any] = [value]

    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                if not ref.startswith("#/"):
                    raise UnresolvedRefError(ref, "external references are not supported")
                name = schema_name_from_ref(ref)
                if name is not None:
                    resolve_pointer(ref, root)
                    names.add(name)
                elif ref not in followed:
                    followed.add(ref)
                    stack.append(resolve_pointer(ref, root))
            stack.extend(v for k, v in node.items() if k != "$ref")
        elif isinstance(node, list):
            stack.extend(node)

    return sorted(names)


def deref(obj: Any, root: dict[str, Any]) -> Any:
    """Follow a chain of non-schema ``$ref`` objects until real content.

    Schema references and non-reference values are returned unchanged.

    Raises:
        CircularRefError: If the chain revisits a reference.
        UnresolvedRefError: If a reference in the chain cannot be resolved.
    """
    seen: set[str] = set()
    while isinstance(obj, dict) and isinstance(obj.get("$ref"), str):
        ref = obj["$ref"]
        if schema_name_from_ref(ref) is not None:
            return obj
        if ref in seen:
            raise CircularRefError(ref)
        seen.add(ref)
        obj = resolve_pointer(ref, root)
    return obj
