from typing import Any, Protocol, runtime_checkable

from k8s_topology.models import ResourceIdentifier


@runtime_checkable
class K8sClientProtocol(Protocol):
    """
    Read-only capability over one cluster's Kubernetes API.

    Implementations return resources as plain dictionaries using the API's
    camelCase field names, with ``kind`` set on every item.
    """

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        """
        Fetch one resource.

        Args:
            resource_id: Resource to fetch

        Returns:
            Resource dictionary, or None if it does not exist
        """
        ...

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """
        List resources of one kind.

        Args:
            kind: Resource kind (e.g., "Pod")
            namespace: Namespace to restrict to; None lists across all namespaces
            label_selector: Optional label selector string ("app=web,tier=fe")

        Returns:
            Tuple of (items, list metadata)

        Raises:
            Exception: Any transport or API error; callers decide whether it is fatal
        """
        ...
