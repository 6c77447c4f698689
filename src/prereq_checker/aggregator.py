"""
Readiness Aggregator - Runs every prerequisite check and assembles the report.
"""
import time
from typing import Callable, List, Optional, Tuple

from loguru import logger

from src.prereq_checker import capacity, platform_checks
from src.prereq_checker.config import CheckerSettings
from src.prereq_checker.credential_probe import CHECK_NAME as ENTITLEMENT_CHECK
from src.prereq_checker.credential_probe import CredentialProbe
from src.prereq_checker.errors import PreconditionUnmet
from src.prereq_checker.models.report import Report
from src.prereq_checker.models.verdicts import CheckResult
from src.prereq_checker.storage.context import StorageContext
from src.prereq_checker.storage.detector import CHECK_NAME as STORAGE_CHECK
from src.prereq_checker.storage.detector import detect


class ReadinessAggregator:
    """Main orchestrator for the cluster prerequisite checks."""

    def __init__(
        self,
        inspector,
        settings: Optional[CheckerSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            inspector: ClusterInspector (or compatible)
            settings: Checker settings, defaults when omitted
            sleep: Blocking delay used by the credential probe
        """
        self.inspector = inspector
        self.settings = settings or CheckerSettings()
        self._sleep = sleep

    def ensure_session(self) -> None:
        """
        Raises:
            PreconditionUnmet: If oc is not installed or no session is established
        """
        if getattr(self.inspector, "cli_tool", None) is None:
            raise PreconditionUnmet(
                "oc CLI is not installed. Please install the oc CLI and try running the check again."
            )
        if not self.inspector.is_cluster_available():
            raise PreconditionUnmet(
                "oc login required. Please login to the cluster and try running the check again."
            )

    def checks(self, skip_storage_check: bool = False) -> List[Tuple[str, Callable[[], CheckResult]]]:
        """Checks in execution order. None depends on another's result."""
        storage_context = StorageContext(self.inspector, self.settings)
        return [
            (
                platform_checks.OCP_VERSION_CHECK,
                lambda: platform_checks.check_ocp_version(self.inspector),
            ),
            (
                ENTITLEMENT_CHECK,
                lambda: CredentialProbe(self.inspector, self.settings, sleep=self._sleep).run(),
            ),
            (
                STORAGE_CHECK,
                lambda: detect(storage_context, skip=skip_storage_check),
            ),
            (
                capacity.CHECK_NAME,
                lambda: capacity.check_capacity(self.inspector, self.settings),
            ),
            (
                platform_checks.CERT_MANAGER_CHECK,
                lambda: platform_checks.check_cert_manager(self.inspector),
            ),
            (
                platform_checks.LICENSING_CHECK,
                lambda: platform_checks.check_licensing(self.inspector),
            ),
        ]

    def _run_check(self, name: str, check: Callable[[], CheckResult]) -> CheckResult:
        logger.info(f"{'=' * 20} {name} {'=' * 20}")
        try:
            result = check()
        except Exception as e:
            # A broken check is reported, the remaining checks still run
            logger.exception(f"Check '{name}' raised an unexpected error")
            return CheckResult.failed(name, f"Check raised an unexpected error: {e}")
        return result

    def run(self, skip_storage_check: bool = False) -> Report:
        """
        Main entry point: verify the session, then run every check.

        Args:
            skip_storage_check: Record the storage provider check as SKIP

        Returns:
            Report with one result per check

        Raises:
            PreconditionUnmet: Before any check runs, if there is no usable session
        """
        self.ensure_session()
        logger.info("Starting IBM Cloud Pak for AIOps prerequisite checker v4.4...")

        report = Report()
        for name, check in self.checks(skip_storage_check):
            report.record(self._run_check(name, check))
        return report
