"""ClusterSource backed by kubernetes-asyncio."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

import structlog

from loglag.models.records import PodListing

_log = structlog.get_logger(component="cluster.kubernetes")


class KubernetesClusterSource:
    """Lists namespaces and pods through the CoreV1 API.

    Build it with ``await KubernetesClusterSource.connect(path)``; the
    constructor only wraps an already configured ``ApiClient``.
    """

    def __init__(self, api_client: Any) -> None:
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        self._api_client = api_client
        self._v1 = k8s_client.CoreV1Api(api_client)

    @classmethod
    async def connect(cls, kubeconfig_path: str) -> KubernetesClusterSource:
        """Load kubeconfig from *kubeconfig_path*, or in-cluster config as a fallback."""
        import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
        from kubernetes_asyncio import client as k8s_client

        if os.path.exists(kubeconfig_path):
            await k8s_config.load_kube_config(config_file=kubeconfig_path)
            _log.info("k8s client configured from kubeconfig", path=kubeconfig_path)
        else:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")

        return cls(k8s_client.ApiClient())

    async def list_namespaces(self) -> list[str]:
        result = await self._v1.list_namespace()
        return [ns.metadata.name for ns in result.items]

    async def list_pods(self, namespace: str) -> list[PodListing]:
        result = await self._v1.list_namespaced_pod(namespace)
        return [
            PodListing(name=pod.metadata.name, start_time=_as_utc(pod.status.start_time if pod.status else None))
            for pod in result.items
        ]

    async def close(self) -> None:
        await self._api_client.close()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
