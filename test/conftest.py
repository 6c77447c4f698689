"""
Shared fixtures: an in-memory stand-in for ClusterInspector so no cluster is needed.
"""
import os
import sys
from typing import Any, Dict, List, Optional

import pytest
import yaml

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.prereq_checker.config import CheckerSettings


class FakeInspector:
    """Implements the ClusterInspector methods the checks call, backed by dicts."""

    def __init__(self):
        self.cli_tool: Optional[str] = "oc"
        self.logged_in = True
        self.version: Optional[str] = "4.13.12"
        self.fips = False
        self.nodes: List[Dict[str, Any]] = []
        self.descriptions: Dict[str, str] = {}
        self.objects: Dict[tuple, Dict[str, Any]] = {}
        self.operators: List[Dict[str, str]] = []
        self.logs: Dict[str, str] = {}

        # Credential probe behaviour
        self.spawn_probe_pod = True
        self.probe_pod_name = "cp4aiops-entitlement-key-test-job-abc12"
        self.probe_pod_states: List[Dict[str, Any]] = []
        self.applied: List[Dict[str, Any]] = []
        self.deleted: List[tuple] = []
        self.pod_reads = 0

    # Helpers for tests

    def add(self, kind: str, name: str, namespace: Optional[str] = None, **body: Any) -> None:
        obj = {"metadata": {"name": name, "namespace": namespace}}
        obj.update(body)
        self.objects[(kind, namespace, name)] = obj

    def add_pod(self, name: str, namespace: str, phase: str, labels: Optional[Dict] = None) -> None:
        self.objects[("pod", namespace, name)] = {
            "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
            "status": {"phase": phase},
        }

    def has(self, kind: str, name: str, namespace: Optional[str] = None) -> bool:
        return (kind, namespace, name) in self.objects

    # ClusterInspector interface

    def is_cluster_available(self) -> bool:
        return self.logged_in

    def get_platform_version(self) -> Optional[str]:
        return self.version

    def is_fips_enabled(self) -> bool:
        return self.fips

    def list_nodes(self) -> List[Dict[str, Any]]:
        return self.nodes

    def describe_node(self, name: str) -> Optional[str]:
        return self.descriptions.get(name)

    def get_object(self, kind: str, name: str, namespace: Optional[str] = None):
        if kind == "pod" and name == self.probe_pod_name and self.probe_pod_states:
            if not self.has("pod", name):
                return None
            self.pod_reads += 1
            index = min(self.pod_reads, len(self.probe_pod_states)) - 1
            return self.probe_pod_states[index]
        return self.objects.get((kind, namespace, name))

    def list_objects(self, kind, namespace=None, all_namespaces=False, selector=None):
        items = []
        for (obj_kind, obj_ns, _), obj in self.objects.items():
            if obj_kind != kind:
                continue
            if not all_namespaces and obj_ns != namespace:
                continue
            if selector:
                key, _, value = selector.partition("=")
                if obj["metadata"].get("labels", {}).get(key) != value:
                    continue
            items.append(obj)
        return items

    def list_pods(self, namespace=None, selector=None):
        return self.list_objects("pod", namespace=namespace, selector=selector)

    def apply_manifest(self, manifest: str) -> bool:
        doc = yaml.safe_load(manifest)
        self.applied.append(doc)
        name = doc["metadata"]["name"]
        self.objects[("job", None, name)] = doc
        if self.spawn_probe_pod:
            self.add_pod(self.probe_pod_name, None, "Pending", labels={"job-name": name})
        return True

    def delete_object(self, kind: str, name: str, namespace: Optional[str] = None) -> bool:
        self.deleted.append((kind, name))
        self.objects.pop((kind, namespace, name), None)
        return True

    def delete_by_selector(self, kind: str, selector: str, namespace: Optional[str] = None) -> bool:
        self.deleted.append((kind, selector))
        for obj in self.list_objects("pod", namespace=namespace, selector=selector):
            self.objects.pop(("pod", namespace, obj["metadata"]["name"]), None)
        return True

    def get_pod_logs(self, name: str, namespace: Optional[str] = None) -> Optional[str]:
        return self.logs.get(name)

    def list_operators(self) -> List[Dict[str, str]]:
        return self.operators


def make_node(
    name: str,
    cpu: str = "16",
    memory: str = "64Gi",
    arch: Optional[str] = "amd64",
    master: bool = False,
    no_schedule: bool = False,
) -> Dict[str, Any]:
    labels = {"kubernetes.io/hostname": name}
    if arch is not None:
        labels["kubernetes.io/arch"] = arch
    if master:
        labels["node-role.kubernetes.io/master"] = ""
    taints = [{"key": "node-role.kubernetes.io/master", "effect": "NoSchedule"}] if no_schedule else []
    return {
        "metadata": {"name": name, "labels": labels},
        "spec": {"taints": taints},
        "status": {"allocatable": {"cpu": cpu, "memory": memory}},
    }


def make_description(cpu_request: str = "0", memory_request: str = "0") -> str:
    return f"""Name:               node
Roles:              worker
Allocatable:
  cpu:                16
  memory:             64Gi
Allocated resources:
  (Total limits may be over 100 percent, i.e., overcommitted.)
  Resource           Requests      Limits
  --------           --------      ------
  cpu                {cpu_request} (10%)   9 (60%)
  memory             {memory_request} (15%)  14Gi (23%)
  ephemeral-storage  0 (0%)        0 (0%)
Events:              <none>
"""


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def settings() -> CheckerSettings:
    return CheckerSettings(
        poll_interval_seconds=0,
        stale_job_settle_seconds=0,
        job_start_delay_seconds=0,
    )


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


def healthy_cluster(inspector: FakeInspector) -> None:
    """Populate the fake with a cluster on which every check passes."""
    inspector.version = "4.13.12"
    inspector.add("secret", "ibm-entitlement-key")
    inspector.probe_pod_states = [
        {"status": {"phase": "Succeeded", "containerStatuses": [{"state": {"terminated": {"reason": "Completed"}}}]}}
    ]
    inspector.logs[inspector.probe_pod_name] = "SUCCESS"
    inspector.add("storageclass", "ibmc-block-gold", allowVolumeExpansion=True)
    inspector.add("storageclass", "ibmc-file-gold-gid", allowVolumeExpansion=True)
    for i in range(3):
        inspector.nodes.append(make_node(f"worker-{i}", cpu="24", memory="52Gi"))
        inspector.descriptions[f"worker-{i}"] = make_description()
    inspector.operators = [
        {"name": "cert-manager.v1.11.1", "namespace": "cert-manager-operator", "phase": "Succeeded"},
        {"name": "ibm-licensing-operator.v4.2.1", "namespace": "ibm-licensing", "phase": "Succeeded"},
    ]
