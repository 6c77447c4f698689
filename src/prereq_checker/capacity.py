"""
Capacity Aggregator - Sums unrequested node resources and classifies the cluster
against the Small and Large install profiles.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from src.prereq_checker.config import CheckerSettings
from src.prereq_checker.errors import InspectionError
from src.prereq_checker.models.cluster import (
    ClusterCapacity,
    NodeResourceSample,
    NodeRole,
    Profile,
    ProfileClassification,
    ProfileThreshold,
    RoleStrategy,
    UnitUnsupported,
)
from src.prereq_checker.models.verdicts import CheckResult, FailureKind, Verdict
from src.prereq_checker.utils.quantities import cpu_to_millicores, normalize_memory

CHECK_NAME = "Small or Large Profile Install Resources"

ARCH_LABEL = "kubernetes.io/arch"
MASTER_ROLE_LABEL = "node-role.kubernetes.io/master"

SUPPORTED_UNITS_HINT = "Ki, Mi, Gi, Ti, Pi, Ei, bytes and m"


def parse_allocated_requests(describe_text: str) -> Tuple[str, str]:
    """
    Extract the requested CPU and memory from 'oc describe node' output.

    The 'Allocated resources' table looks like:

        Allocated resources:
          (Total limits may be over 100 percent, i.e., overcommitted.)
          Resource           Requests      Limits
          --------           --------      ------
          cpu                3350m (22%)   9 (60%)
          memory             9474Mi (15%)  14Gi (23%)

    Returns:
        (cpu_request, memory_request) raw strings, "0" when not reported
    """
    cpu_request = "0"
    memory_request = "0"
    in_section = False

    for line in describe_text.splitlines():
        if line.startswith("Allocated resources:"):
            in_section = True
            continue
        if not in_section:
            continue
        if line and not line[0].isspace():
            # Next top-level section
            break

        parts = line.split()
        if len(parts) < 2:
            continue
        if parts[0] == "cpu":
            cpu_request = parts[1]
        elif parts[0] == "memory":
            memory_request = parts[1]

    return cpu_request, memory_request


def choose_role_strategy(nodes: Iterable[Dict[str, Any]]) -> RoleStrategy:
    """Use the label-based strategy whenever the nodes carry an architecture label."""
    for node in nodes:
        if ARCH_LABEL in node.get("metadata", {}).get("labels", {}):
            return RoleStrategy.ARCHITECTURE_AWARE
    return RoleStrategy.TAINT_BASED


def node_role(node: Dict[str, Any], strategy: RoleStrategy) -> NodeRole:
    if strategy is RoleStrategy.ARCHITECTURE_AWARE:
        labels = node.get("metadata", {}).get("labels", {})
        return NodeRole.MASTER if MASTER_ROLE_LABEL in labels else NodeRole.WORKER

    taints = node.get("spec", {}).get("taints") or []
    if any(taint.get("effect") == "NoSchedule" for taint in taints):
        return NodeRole.MASTER
    return NodeRole.WORKER


def sample_node(
    node: Dict[str, Any], describe_text: str, strategy: RoleStrategy
) -> NodeResourceSample:
    """Build a NodeResourceSample from a node object and its description."""
    metadata = node.get("metadata", {})
    allocatable = node.get("status", {}).get("allocatable", {})
    cpu_request, memory_request = parse_allocated_requests(describe_text)

    architecture = None
    if strategy is RoleStrategy.ARCHITECTURE_AWARE:
        architecture = metadata.get("labels", {}).get(ARCH_LABEL)

    return NodeResourceSample(
        name=metadata.get("name", ""),
        allocatable_cpu=cpu_to_millicores(allocatable.get("cpu", "")),
        allocatable_memory_mb=normalize_memory(allocatable.get("memory", "")),
        requested_cpu=cpu_to_millicores(cpu_request),
        requested_memory_mb=normalize_memory(memory_request),
        architecture=architecture,
        role=node_role(node, strategy),
    )


def build_node_samples(
    nodes: Sequence[Dict[str, Any]], describe: Callable[[str], Optional[str]]
) -> List[NodeResourceSample]:
    """
    Sample every node.

    Args:
        nodes: Node objects from 'oc get nodes -o json'
        describe: Returns the 'oc describe node' text for a node name

    Raises:
        InspectionError: If a node cannot be described
    """
    strategy = choose_role_strategy(nodes)
    logger.debug(f"Classifying node roles with strategy {strategy.value}")

    samples = []
    for node in nodes:
        name = node.get("metadata", {}).get("name", "")
        describe_text = describe(name)
        if describe_text is None:
            raise InspectionError(f"Unable to describe node {name}")
        samples.append(sample_node(node, describe_text, strategy))
    return samples


def _round_half_away(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def aggregate(
    samples: Iterable[NodeResourceSample], architecture: str = "amd64"
) -> ClusterCapacity:
    """
    Sum unrequested CPU and memory over the nodes of the supported architecture.

    Over-committed nodes contribute negative capacity. A node without an
    architecture label is kept. A node with an unsupported unit is left out of
    that total, which then is a lower bound.

    Args:
        samples: Per-node resource samples, in any order
        architecture: The only architecture that counts towards capacity

    Returns:
        ClusterCapacity with vCPU and GB rounded half away from zero
    """
    cpu_millicores = 0
    memory_mb = Decimal(0)
    cpu_complete = True
    memory_complete = True
    workers = 0
    masters = 0
    excluded = []
    unsupported = []

    for sample in sorted(samples, key=lambda s: s.name):
        if sample.architecture is not None and sample.architecture != architecture:
            logger.info(f"Ignoring node {sample.name} because it is not {architecture}")
            excluded.append(sample.name)
            continue

        if sample.role is NodeRole.MASTER:
            masters += 1
        else:
            workers += 1

        cpu_values = (sample.allocatable_cpu, sample.requested_cpu)
        memory_values = (sample.allocatable_memory_mb, sample.requested_memory_mb)

        for value in cpu_values + memory_values:
            if isinstance(value, UnitUnsupported):
                unsupported.append(f"{sample.name}: {value.raw or '<empty>'}")

        if any(isinstance(v, UnitUnsupported) for v in cpu_values):
            cpu_complete = False
        else:
            cpu_millicores += sample.allocatable_cpu - sample.requested_cpu

        if any(isinstance(v, UnitUnsupported) for v in memory_values):
            memory_complete = False
        else:
            memory_mb += sample.allocatable_memory_mb - sample.requested_memory_mb

    return ClusterCapacity(
        vcpu=_round_half_away(Decimal(cpu_millicores) / 1000),
        memory_gb=_round_half_away(memory_mb / 1024),
        worker_nodes=workers,
        master_nodes=masters,
        excluded_nodes=excluded,
        unsupported_quantities=unsupported,
        cpu_complete=cpu_complete,
        memory_complete=memory_complete,
    )


def meets_threshold(capacity: ClusterCapacity, threshold: ProfileThreshold) -> bool:
    """CPU and memory only; node counts are judged by classify()."""
    return capacity.vcpu >= threshold.vcpu and capacity.memory_gb >= threshold.memory_gb


def large_profile_node_tier(
    workers: int, large: ProfileThreshold, min_workers: int = 6
) -> Verdict:
    """Node-count tier of the large profile: FAIL below min_workers, WARN below the recommended count."""
    if workers < min_workers:
        return Verdict.FAIL
    if workers >= large.node_count:
        return Verdict.PASS
    return Verdict.WARN


def classify(
    capacity: ClusterCapacity,
    small: ProfileThreshold,
    large: ProfileThreshold,
    large_min_workers: int = 6,
) -> ProfileClassification:
    """
    Decide which install profile the cluster can host.

    Large needs at least large.node_count workers to PASS; between
    large_min_workers and that count it is a WARN (resilience caveat). When
    Large is not reachable the Small profile is evaluated on its own.
    """
    node_tier = large_profile_node_tier(capacity.worker_nodes, large, large_min_workers)

    if node_tier is not Verdict.FAIL and meets_threshold(capacity, large):
        return ProfileClassification(profile=Profile.LARGE, tier=node_tier)

    if capacity.worker_nodes >= small.node_count and meets_threshold(capacity, small):
        return ProfileClassification(profile=Profile.SMALL, tier=Verdict.PASS)

    return ProfileClassification(profile=None, tier=Verdict.FAIL)


def _cell(available: int, required: int, complete: bool = True) -> str:
    # A lower bound that did not come out positive says nothing about the cluster
    shown = "DNE" if not complete and available <= 0 else str(available)
    return f"[ {shown:>5}/{required:<5}]"


def summary_lines(
    capacity: ClusterCapacity, small: ProfileThreshold, large: ProfileThreshold
) -> List[str]:
    """Resource summary table, available/required per profile."""
    lines = [f"{'':37}|  Nodes        |  vCPU         |  Memory(GB)"]
    for threshold in (small, large):
        label = f"{threshold.profile.value} profile(available/required)"
        lines.append(
            f"{label:37}|  {_cell(capacity.worker_nodes, threshold.node_count)}"
            f"|  {_cell(capacity.vcpu, threshold.vcpu, capacity.cpu_complete)}"
            f"|  {_cell(capacity.memory_gb, threshold.memory_gb, capacity.memory_complete)}"
        )
    return lines


def check_capacity(inspector, settings: CheckerSettings) -> CheckResult:
    """
    Run the profile resource check against the cluster.

    Nodes with an unrecognized quantity are left out of the totals. When the
    remaining nodes still qualify for a profile the check is a WARN, otherwise
    it is a FAIL; both carry FailureKind.UNSUPPORTED_INPUT.

    Args:
        inspector: ClusterInspector (or compatible) providing list_nodes/describe_node
        settings: Checker settings with the profile thresholds

    Returns:
        CheckResult for the profile check
    """
    logger.info("Checking for cluster resources")

    nodes = inspector.list_nodes()
    if not nodes:
        return CheckResult.failed(CHECK_NAME, "No nodes could be read from the cluster")

    samples = build_node_samples(nodes, inspector.describe_node)
    capacity = aggregate(samples, settings.supported_architecture)
    small, large = settings.small_profile, settings.large_profile
    classification = classify(capacity, small, large, settings.large_profile_min_workers)

    logger.info("=" * 30 + " Resource Summary " + "=" * 30)
    for line in summary_lines(capacity, small, large):
        logger.info(line)
    unsupported_message = None
    if capacity.unsupported_quantities:
        unsupported_message = (
            "Some node quantities use a unit that is not recognizable "
            f"({', '.join(capacity.unsupported_quantities)}), those nodes were left out of "
            f"the totals. Supported units: {SUPPORTED_UNITS_HINT}"
        )
        logger.warning(unsupported_message)
    logger.info("=" * 78)

    details = {
        "capacity": capacity.model_dump(mode="json"),
        "profile": classification.profile.value if classification.profile else None,
    }

    if classification.tier is Verdict.FAIL:
        logger.error("Cluster does not have required resources available to install Cloud Pak for AIOps.")
        message = "Cluster does not have required resources available to install Cloud Pak for AIOps"
        kind = FailureKind.STRUCTURAL_FAILURE
        if unsupported_message:
            message = f"{message}. {unsupported_message}"
            kind = FailureKind.UNSUPPORTED_INPUT
        return CheckResult.failed(CHECK_NAME, message, kind=kind, **details)

    profile_name = classification.profile.value.lower()
    logger.info(f"Cluster currently has resources available to create a {profile_name} profile")

    warnings = []
    if classification.tier is Verdict.WARN:
        resilience = (
            f"{settings.large_profile_min_workers}-{large.node_count - 1} worker nodes are adequate "
            "for a production deployment, but for resilience at least "
            f"{large.node_count} worker nodes are recommended so the deployment can "
            "withstand a worker node being unavailable"
        )
        logger.warning(resilience)
        warnings.append(resilience)
    if unsupported_message:
        warnings.append(unsupported_message)

    if warnings:
        kind = FailureKind.UNSUPPORTED_INPUT if unsupported_message else FailureKind.DEGRADED_CONDITION
        return CheckResult.warned(CHECK_NAME, ". ".join(warnings), kind, **details)

    return CheckResult.passed(
        CHECK_NAME, f"Resources available for a {profile_name} profile install", **details
    )
