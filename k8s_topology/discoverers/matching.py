"""
Pure matching helpers used by edge inference.

All helpers accept the loosely-typed values found in API responses
(None where a field is unset) and never raise on malformed data; a missing
or mismatched field is simply a non-match.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any


def selector_matches(labels: Mapping[str, str] | None, selector: Mapping[str, str] | None) -> bool:
    """
    Check whether a label set satisfies an equality-based selector.

    An empty or missing selector matches nothing. Every selector key must be
    present in ``labels`` with an identical value; extra labels are ignored.

    Example:
        >>> selector_matches({"app": "web", "tier": "fe"}, {"app": "web"})
        True
        >>> selector_matches({"app": "web"}, {})
        False
    """
    if not selector or not isinstance(selector, Mapping):
        return False
    if not labels or not isinstance(labels, Mapping):
        return False
    for key, value in selector.items():
        if key not in labels or labels[key] != value:
            return False
    return True


def owner_ref_matches(
    owner_refs: Iterable[Mapping[str, Any]] | None, kind: str, name: str
) -> bool:
    """
    Check whether any owner reference names the given kind and name.

    Example:
        >>> refs = [{"kind": "ReplicaSet", "name": "api-7f9c"}]
        >>> owner_ref_matches(refs, "ReplicaSet", "api-7f9c")
        True
    """
    if not owner_refs:
        return False
    for ref in owner_refs:
        if not isinstance(ref, Mapping):
            continue
        if ref.get("kind") == kind and ref.get("name") == name:
            return True
    return False


def group_by_namespace(resources: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Group resources by ``metadata.namespace``, keeping input order within each group."""
    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for resource in resources:
        grouped[get_namespace(resource)].append(resource)
    return dict(grouped)


def get_name(resource: dict[str, Any]) -> str:
    return (resource.get("metadata") or {}).get("name") or ""


def get_namespace(resource: dict[str, Any]) -> str:
    return (resource.get("metadata") or {}).get("namespace") or ""


def get_labels(resource: dict[str, Any]) -> dict[str, str]:
    return (resource.get("metadata") or {}).get("labels") or {}


def get_owner_refs(resource: dict[str, Any]) -> list[dict[str, Any]]:
    return (resource.get("metadata") or {}).get("ownerReferences") or []
