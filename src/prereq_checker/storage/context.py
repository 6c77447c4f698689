"""
Storage Context - The cluster lookups the storage validators and detector need.
"""
from typing import Dict, List, Optional

from src.prereq_checker.config import CheckerSettings


class StorageContext:
    """Thin view over a ClusterInspector, memoizing storage class lookups for one run."""

    def __init__(self, inspector, settings: CheckerSettings):
        self._inspector = inspector
        self.settings = settings
        self._storage_classes: Dict[str, Optional[Dict]] = {}

    def _storage_class(self, name: str) -> Optional[Dict]:
        if name not in self._storage_classes:
            self._storage_classes[name] = self._inspector.get_object("storageclass", name)
        return self._storage_classes[name]

    def storage_class_exists(self, name: str) -> bool:
        return self._storage_class(name) is not None

    def volume_expansion_enabled(self, name: str) -> bool:
        """True only when allowVolumeExpansion is exactly true; absent and false are the same."""
        storage_class = self._storage_class(name)
        if storage_class is None:
            return False
        return storage_class.get("allowVolumeExpansion") is True

    def pod_names(self, namespace: str) -> List[str]:
        return [
            pod.get("metadata", {}).get("name", "")
            for pod in self._inspector.list_pods(namespace=namespace)
        ]

    def pod_phase(self, name: str, namespace: str) -> Optional[str]:
        pod = self._inspector.get_object("pod", name, namespace=namespace)
        if pod is None:
            return None
        return pod.get("status", {}).get("phase")

    def platform_version(self) -> Optional[str]:
        return self._inspector.get_platform_version()

    def portworx_cluster_phases(self) -> List[str]:
        clusters = self._inspector.list_objects(
            "storagecluster.core.libopenstorage.org", all_namespaces=True
        )
        return [cluster.get("status", {}).get("phase", "") for cluster in clusters]
