class TopologyError(Exception):
    """Base class for errors raised by k8s-topology."""


class UnsupportedKindError(TopologyError, ValueError):
    """Raised when a resource kind is outside the discovery catalog."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported resource kind: {kind}")
        self.kind = kind


class ResourceAccessError(TopologyError):
    """
    Raised when the cluster API rejects or fails a read call.

    Only single-object operations raise this. Graph discovery catches
    per-kind failures and degrades to a partial graph instead.
    """

    def __init__(
        self,
        message: str,
        kind: str | None = None,
        namespace: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.namespace = namespace
        self.status = status

    @property
    def is_forbidden(self) -> bool:
        return self.status == 403

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
