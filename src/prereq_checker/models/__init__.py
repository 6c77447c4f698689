"""
Data models for the prerequisite checker using Pydantic.
"""

from src.prereq_checker.models.cluster import (
    ClusterCapacity,
    Megabytes,
    Millicores,
    NodeResourceSample,
    NodeRole,
    ProbeJob,
    ProbeState,
    Profile,
    ProfileClassification,
    ProfileThreshold,
    QuantityUnit,
    ResourceQuantity,
    RoleStrategy,
    StorageProbeResult,
    UnitUnsupported,
)
from src.prereq_checker.models.report import Report
from src.prereq_checker.models.verdicts import CheckResult, FailureKind, Verdict, fold_verdicts

__all__ = [
    "CheckResult",
    "ClusterCapacity",
    "FailureKind",
    "Megabytes",
    "Millicores",
    "NodeResourceSample",
    "NodeRole",
    "ProbeJob",
    "ProbeState",
    "Profile",
    "ProfileClassification",
    "ProfileThreshold",
    "QuantityUnit",
    "Report",
    "ResourceQuantity",
    "RoleStrategy",
    "StorageProbeResult",
    "UnitUnsupported",
    "Verdict",
    "fold_verdicts",
]
