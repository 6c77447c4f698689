"""
Storage Detector - Finds the storage backends installed on the cluster, validates
each one, and folds the results into one verdict.
"""
from typing import List

from loguru import logger

from src.prereq_checker.models.cluster import StorageProbeResult
from src.prereq_checker.models.verdicts import CheckResult, FailureKind, Verdict, fold_verdicts
from src.prereq_checker.storage.context import StorageContext
from src.prereq_checker.storage.validators import (
    STORAGE_DOCS,
    IbmCloudValidator,
    OdfValidator,
    PortworxValidator,
    StorageFusionValidator,
    StorageValidator,
)

CHECK_NAME = "Storage Provider"

PORTWORX_READY_PHASES = ("Running", "Online")


def detect_backends(context: StorageContext) -> List[StorageValidator]:
    """
    Probe for every supported backend and return validators for those present.

    Returns:
        Validators in evaluation order (IBM Cloud, ODF, Portworx, Storage Fusion)
    """
    detected: List[StorageValidator] = []

    if context.storage_class_exists(IbmCloudValidator.FILE_CLASS) or context.storage_class_exists(
        IbmCloudValidator.BLOCK_CLASS
    ):
        logger.info("IBM Cloud Storage found.")
        detected.append(IbmCloudValidator())
    else:
        logger.info("No IBM Cloud Storage found... Skipping configuration check.")

    odf_pods = context.pod_names(context.settings.odf_namespace)
    if odf_pods:
        logger.info("OpenShift Data Foundation found.")
        detected.append(OdfValidator(pods=odf_pods))
    else:
        logger.info("OpenShift Data Foundation not running. Skipping configuration check.")

    phases = context.portworx_cluster_phases()
    if any(phase in PORTWORX_READY_PHASES for phase in phases):
        logger.info("Portworx found. StorageCluster in Running or Online status.")
        detected.append(PortworxValidator())
    else:
        logger.info("No Portworx StorageCluster in Running or Online status. Skipping configuration check.")

    if context.storage_class_exists(StorageFusionValidator.STORAGE_CLASS):
        logger.info("A storage class related to Storage Fusion was found.")
        detected.append(StorageFusionValidator())
    else:
        logger.info("No IBM Storage Fusion found... Skipping configuration check.")

    return detected


def detect(context: StorageContext, skip: bool = False) -> CheckResult:
    """
    Run the storage provider check.

    Args:
        context: Storage lookups for this run
        skip: Record the check as SKIP without touching the cluster

    Returns:
        CheckResult whose verdict is the worst of the detected backends
    """
    if skip:
        logger.info("Skipping storage provider check")
        return CheckResult.skipped(CHECK_NAME, "Storage provider check skipped by request")

    logger.info("Checking storage providers")
    validators = detect_backends(context)

    if not validators:
        message = (
            "At least one supported storage provider is required: Portworx, OpenShift Data "
            "Foundation, IBM Cloud Storage for ROKS, or IBM Storage Fusion. "
            f"See {STORAGE_DOCS}"
        )
        logger.error(message)
        return CheckResult.failed(CHECK_NAME, message, backends=[])

    results: List[StorageProbeResult] = [validator.validate(context) for validator in validators]
    verdict = fold_verdicts(result.verdict for result in results)
    details = {"backends": [result.model_dump(mode="json") for result in results]}
    problems = "; ".join(
        f"{r.backend}: {r.reason}" for r in results if r.verdict in (Verdict.FAIL, Verdict.WARN)
    )

    if verdict is Verdict.FAIL:
        logger.info("One or more errors found when checking for Storage Providers.")
        return CheckResult.failed(CHECK_NAME, problems, **details)

    if verdict is Verdict.WARN:
        logger.info("One or more warnings found when checking for Storage Providers.")
        return CheckResult.warned(CHECK_NAME, problems, FailureKind.DEGRADED_CONDITION, **details)

    logger.info("No warnings or failures found when checking for Storage Providers.")
    backends = ", ".join(r.backend for r in results)
    return CheckResult.passed(CHECK_NAME, f"Storage configured correctly: {backends}", **details)
