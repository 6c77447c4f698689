"""
Platform checks - OpenShift version and required operator presence.
"""
from typing import Optional

from loguru import logger

from src.prereq_checker.models.verdicts import CheckResult

OCP_VERSION_CHECK = "Openshift Container Platform Version Check"
CERT_MANAGER_CHECK = "Cert Manager Check"
LICENSING_CHECK = "Licensing Service Operator Check"

SUPPORTED_VERSIONS_HINT = (
    "v4.11 (non-FIPS enabled cluster), v4.12, v4.13, and v4.14 (homogenous clusters only)"
)


def minor_release(version: str) -> Optional[str]:
    """Major.minor part of a platform version ("4.12.30" -> "4.12"), None if malformed."""
    parts = version.split(".")
    if len(parts) < 2:
        return None
    return f"{parts[0]}.{parts[1]}"


def check_ocp_version(inspector) -> CheckResult:
    """
    Check that the cluster runs a supported OpenShift release.

    4.12 and 4.13 pass, 4.14 passes for amd64 nodes only, 4.11 passes only
    when FIPS mode is off.
    """
    logger.info(f"Checking OCP Version. Compatible versions of OCP are {SUPPORTED_VERSIONS_HINT}.")
    version = inspector.get_platform_version()
    if not version:
        return CheckResult.failed(OCP_VERSION_CHECK, "Unable to read the cluster version")

    release = minor_release(version)

    if release in ("4.12", "4.13"):
        logger.info(f"OCP version {version} is compatible.")
        return CheckResult.passed(OCP_VERSION_CHECK, f"OCP version {version} is compatible", version=version)

    if release == "4.14":
        message = (
            f"OCP version {version} is compatible but only nodes with AMD64 "
            "architectures are supported at this time"
        )
        logger.info(message)
        return CheckResult.passed(OCP_VERSION_CHECK, message, version=version)

    if release == "4.11":
        if inspector.is_fips_enabled():
            message = f"OCP version {version} is compatible for only non-FIPS enabled clusters"
            logger.error(message)
            return CheckResult.failed(OCP_VERSION_CHECK, message, version=version)
        logger.info(f"OCP version {version} is compatible (FIPS is not enabled).")
        return CheckResult.passed(OCP_VERSION_CHECK, f"OCP version {version} is compatible", version=version)

    message = f"OCP version is incompatible. Required versions: {SUPPORTED_VERSIONS_HINT}. Your version: v{version}"
    logger.error(message)
    return CheckResult.failed(OCP_VERSION_CHECK, message, version=version)


def check_operator_present(inspector, check_name: str, operator_keyword: str) -> CheckResult:
    """
    Check that an operator is installed and healthy.

    Args:
        inspector: ClusterInspector (or compatible) providing list_operators()
        check_name: Title of the check in the report
        operator_keyword: Substring of the ClusterServiceVersion name

    Returns:
        PASS for Succeeded or Pending operators, FAIL otherwise
    """
    logger.info(f"Checking for {operator_keyword} operator")

    matches = [op for op in inspector.list_operators() if operator_keyword in op["name"]]
    if not matches:
        message = f"Cluster does not have a {operator_keyword} operator installed"
        logger.error(message)
        return CheckResult.failed(check_name, message)

    operator = matches[0]
    details = {"operator": operator["name"], "namespace": operator["namespace"], "phase": operator["phase"]}
    logger.info(f"CLUSTERSERVICEVERSION {operator['name']}  NAMESPACE {operator['namespace']}")

    if operator["phase"] == "Succeeded":
        logger.info(f"Successfully functioning {operator_keyword} found.")
        return CheckResult.passed(check_name, f"{operator['name']} is installed", **details)

    if operator["phase"] == "Pending":
        logger.info(f"Pending {operator_keyword} found.")
        return CheckResult.passed(check_name, f"{operator['name']} is installed but Pending", **details)

    message = f"Unsuccessfully installed {operator_keyword} found (phase: {operator['phase'] or 'unknown'})"
    logger.error(message)
    return CheckResult.failed(check_name, message, **details)


def check_cert_manager(inspector) -> CheckResult:
    return check_operator_present(inspector, CERT_MANAGER_CHECK, "cert-manager")


def check_licensing(inspector) -> CheckResult:
    return check_operator_present(inspector, LICENSING_CHECK, "licensing-operator")
