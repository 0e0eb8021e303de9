from k8s_topology.adapters.kubernetes import KubernetesAdapter

__all__ = ["KubernetesAdapter"]
