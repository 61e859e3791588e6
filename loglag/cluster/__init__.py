"""Cluster access for loglag.

Submodules
----------
discovery  -- ClusterSource protocol, namespace prefix filter, discovery pass.
kubernetes -- KubernetesClusterSource: kubernetes-asyncio implementation.
"""

from loglag.cluster.discovery import ClusterSource, DiscoveryError, discover, is_target_namespace

__all__ = ["ClusterSource", "DiscoveryError", "discover", "is_target_namespace"]
