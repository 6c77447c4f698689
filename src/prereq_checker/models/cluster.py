"""
Data models for cluster capacity, storage probes and the credential probe job.
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.prereq_checker.models.verdicts import Verdict


class QuantityUnit(str, Enum):
    """Unit suffixes the normalizer recognizes."""

    BYTES = "bytes"
    KI = "Ki"
    MI = "Mi"
    GI = "Gi"
    TI = "Ti"
    PI = "Pi"
    EI = "Ei"
    MILLI = "m"
    RAW_INTEGER = "rawInteger"


class ResourceQuantity(BaseModel):
    """A raw cluster-reported value split into magnitude and unit."""

    model_config = ConfigDict(frozen=True)

    magnitude: Decimal
    unit: QuantityUnit


class UnitUnsupported(BaseModel):
    """Marker for a quantity whose unit could not be recognized. Never equal to zero."""

    model_config = ConfigDict(frozen=True)

    raw: str

    def __str__(self) -> str:
        return f"unsupported quantity '{self.raw}'"


Megabytes = Union[Decimal, UnitUnsupported]
Millicores = Union[int, UnitUnsupported]


class NodeRole(str, Enum):
    WORKER = "worker"
    MASTER = "master"


class RoleStrategy(str, Enum):
    """How a node's role is decided."""

    # Worker when the node carries no NoSchedule taint
    TAINT_BASED = "taint_based"
    # Worker when the node carries no master role label; needs the arch label
    ARCHITECTURE_AWARE = "architecture_aware"


class NodeResourceSample(BaseModel):
    """Per-node allocatable and requested resources."""

    model_config = ConfigDict(frozen=True)

    name: str
    allocatable_cpu: Millicores
    allocatable_memory_mb: Megabytes
    requested_cpu: Millicores
    requested_memory_mb: Megabytes
    architecture: Optional[str] = None
    role: NodeRole = NodeRole.WORKER


class ClusterCapacity(BaseModel):
    """
    Unrequested capacity of the supported nodes of a cluster.

    A node with an unrecognized CPU or memory quantity is left out of that
    total, so a total with cpu_complete/memory_complete False is a lower bound.
    """

    model_config = ConfigDict(frozen=True)

    vcpu: int = Field(0, description="Unrequested vCPU")
    memory_gb: int = Field(0, description="Unrequested memory in GB")
    worker_nodes: int = 0
    master_nodes: int = 0
    excluded_nodes: List[str] = Field(default_factory=list)
    unsupported_quantities: List[str] = Field(default_factory=list)
    cpu_complete: bool = True
    memory_complete: bool = True


class Profile(str, Enum):
    SMALL = "Small"
    LARGE = "Large"


class ProfileThreshold(BaseModel):
    """Minimum resources of one install profile."""

    model_config = ConfigDict(frozen=True)

    profile: Profile
    node_count: int
    vcpu: int
    memory_gb: int


class ProfileClassification(BaseModel):
    """Which profile the cluster can host, and how confidently."""

    model_config = ConfigDict(frozen=True)

    profile: Optional[Profile] = None
    tier: Verdict


class StorageProbeResult(BaseModel):
    """Outcome of validating one storage backend."""

    model_config = ConfigDict(frozen=True)

    backend: str
    verdict: Verdict
    reason: str = ""


class ProbeState(str, Enum):
    """Terminal states of the credential probe job."""

    UNKNOWN = "Unknown"
    SUCCEEDED = "Succeeded"
    IMAGE_PULL_FAILED = "ImagePullFailed"
    OTHER_FAILURE = "OtherFailure"
    NOT_FOUND = "NotFound"
    TIMED_OUT = "TimedOut"


class ProbeJob(BaseModel):
    """The disposable Job submitted to exercise the pull credential."""

    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    state: ProbeState = ProbeState.UNKNOWN
    pod_name: Optional[str] = None
    container_reason: Optional[str] = None
