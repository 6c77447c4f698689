"""
Cloud Pak for AIOps Prerequisite Checker - MCP Server

This MCP server checks whether the connected OpenShift cluster meets the
prerequisites for installing IBM Cloud Pak for AIOps 4.4.
"""

from loguru import logger
from mcp.server.fastmcp import FastMCP

from src.cluster_inspector.inspector import ClusterInspector
from src.prereq_checker import capacity
from src.prereq_checker.aggregator import ReadinessAggregator
from src.prereq_checker.config import load_settings
from src.prereq_checker.errors import ConfigurationError, InspectionError, PreconditionUnmet

# Initialize the MCP server
mcp = FastMCP("aiops-prereq-checker")


@mcp.tool()
def check_prerequisites(skip_storage_check: bool = False) -> dict:
    """
    Run every Cloud Pak for AIOps prerequisite check against the connected cluster.

    ⚠️ USE THIS TOOL when the user asks whether their cluster is ready for Cloud Pak for AIOps:
    - "can I install AIOps on my cluster?"
    - "run the prereq checker"
    - "is my cluster ready for Cloud Pak for AIOps?"

    Checks run, in order:
    - OpenShift version
    - Entitlement pull secret (creates and deletes one short-lived Job)
    - Storage provider (Portworx, ODF, IBM Cloud Storage, IBM Storage Fusion)
    - Small or large profile resources
    - Cert manager operator
    - Licensing service operator

    Args:
        skip_storage_check: Skip the storage provider check when an alternate
                            storage provider is used

    Returns:
        Dictionary containing:
        - success: False only when the settings are invalid or the cluster could not be reached
        - report: overall verdict, exit_code and one entry per check
        - summary: Rendered summary table
        - error: Error message if the settings are invalid or the cluster is not accessible
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return {"success": False, "error": str(e)}
    aggregator = ReadinessAggregator(ClusterInspector(timeout=settings.command_timeout), settings)

    try:
        report = aggregator.run(skip_storage_check=skip_storage_check)
    except PreconditionUnmet as e:
        return {"success": False, "error": str(e)}

    summary = report.render()
    return {"success": True, "report": report.to_dict(), "summary": summary}


@mcp.tool()
def scan_cluster_capacity() -> dict:
    """
    Report the unrequested CPU and memory of the cluster and which install profile fits.

    This performs only the resource check; nothing is created on the cluster.

    Returns:
        Dictionary containing:
        - success: Boolean indicating if the operation was successful
        - result: Verdict, message, capacity and profile
        - error: Error message if the cluster is not accessible

    Example:
        >>> scan_cluster_capacity()
        {
            "success": True,
            "result": {
                "verdict": "PASS",
                "details": {"capacity": {"vcpu": 200, "memory_gb": 400, ...}, "profile": "Large"}
            }
        }
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return {"success": False, "error": str(e)}
    inspector = ClusterInspector(timeout=settings.command_timeout)

    if not inspector.is_cluster_available():
        return {
            "success": False,
            "error": "Cluster not accessible. Please connect to an OpenShift cluster using 'oc login'.",
        }

    try:
        result = capacity.check_capacity(inspector, settings)
    except InspectionError as e:
        return {"success": False, "error": str(e)}

    return {"success": True, "result": result.model_dump(mode="json")}


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
