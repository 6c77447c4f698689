"""
Credential Probe - Verifies the image pull credential by running a disposable Job.

The Job pulls a product image with the entitlement key (or the global pull
secret) and echoes a success token. Its pod is polled for a bounded number of
attempts; the Job and its pods are always deleted before the check returns.
"""
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import yaml
from loguru import logger

from src.prereq_checker.config import CheckerSettings
from src.prereq_checker.errors import InspectionError
from src.prereq_checker.models.cluster import ProbeJob, ProbeState
from src.prereq_checker.models.verdicts import CheckResult, FailureKind

CHECK_NAME = "Entitlement Pull Secret"

IMAGE_PULL_REASONS = ("ErrImagePull", "ImagePullBackOff")


def container_reasons(pod: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Waiting and terminated reasons of the first container of a pod."""
    statuses = pod.get("status", {}).get("containerStatuses") or [{}]
    state = statuses[0].get("state", {})
    return {
        "waiting": state.get("waiting", {}).get("reason"),
        "terminated": state.get("terminated", {}).get("reason"),
    }


class CredentialProbe:
    """Runs the entitlement verification Job and interprets its outcome."""

    def __init__(
        self,
        inspector,
        settings: CheckerSettings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            inspector: ClusterInspector (or compatible)
            settings: Probe name, image, poll budget and secret names
            sleep: Blocking delay function, replaced in tests
        """
        self.inspector = inspector
        self.settings = settings
        self._sleep = sleep

    @property
    def job_selector(self) -> str:
        return f"job-name={self.settings.probe_job_name}"

    def build_manifest(self, use_entitlement_secret: bool) -> str:
        """Render the probe Job as YAML for 'oc apply'."""
        pod_spec: Dict[str, Any] = {
            "affinity": {
                "nodeAffinity": {
                    "requiredDuringSchedulingIgnoredDuringExecution": {
                        "nodeSelectorTerms": [
                            {
                                "matchExpressions": [
                                    {
                                        "key": "kubernetes.io/arch",
                                        "operator": "In",
                                        "values": [self.settings.supported_architecture],
                                    }
                                ]
                            }
                        ]
                    }
                }
            },
            "containers": [
                {
                    "name": "testimage",
                    "image": self.settings.probe_image,
                    "imagePullPolicy": "Always",
                    "command": ["echo", self.settings.probe_success_token],
                }
            ],
            "restartPolicy": "OnFailure",
        }
        if use_entitlement_secret:
            pod_spec["imagePullSecrets"] = [{"name": self.settings.entitlement_secret}]

        manifest = {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {"name": self.settings.probe_job_name},
            "spec": {
                "parallelism": 1,
                "completions": 1,
                "template": {
                    "metadata": {"name": "pi"},
                    "spec": pod_spec,
                },
            },
        }
        return yaml.safe_dump(manifest, sort_keys=False)

    def _remove_stale_job(self) -> None:
        name = self.settings.probe_job_name
        logger.info(f"Checking if the job '{name}' already exists.")
        if self.inspector.get_object("job", name) is None:
            logger.info(f"The job '{name}' was not found, moving ahead and creating it.")
            return

        logger.info(f"Deleting leftover job '{name}' from a previous run")
        self._delete_job()
        self._sleep(self.settings.stale_job_settle_seconds)

    def _delete_job(self) -> None:
        name = self.settings.probe_job_name
        if not self.inspector.delete_object("job", name):
            logger.warning(f"Could not delete job '{name}'")
        if not self.inspector.delete_by_selector("pods", self.job_selector):
            logger.warning(f"Could not delete pods of job '{name}'")

    @contextmanager
    def probe_job(self, use_entitlement_secret: bool) -> Iterator[ProbeJob]:
        """
        Create the probe Job and guarantee its deletion.

        Raises:
            InspectionError: If the Job cannot be created (cleanup still runs)
        """
        job = ProbeJob(name=self.settings.probe_job_name)
        try:
            self._remove_stale_job()
            logger.info(f"Creating the job '{job.name}'")
            if not self.inspector.apply_manifest(self.build_manifest(use_entitlement_secret)):
                raise InspectionError(f"Unable to create job '{job.name}'")
            yield job
        finally:
            logger.debug(f"Cleaning up job '{job.name}'")
            self._delete_job()

    def _find_pod(self) -> Optional[str]:
        pods = self.inspector.list_pods(selector=self.job_selector)
        if not pods:
            return None
        return pods[0].get("metadata", {}).get("name")

    def poll(self, job: ProbeJob) -> ProbeJob:
        """
        Poll the probe pod until it reaches a terminal state or the attempt budget runs out.

        A pod that never appears is NOT_FOUND without consuming the budget. An
        image pull error ends polling at once when stop_on_image_pull_failure is
        set; otherwise it is only reported if it is still the last observation
        when the budget is exhausted.
        """
        job.pod_name = self._find_pod()
        if job.pod_name is None:
            job.state = ProbeState.NOT_FOUND
            return job

        attempts = self.settings.poll_attempts
        last_pull_failure = False

        while job.attempts < attempts:
            job.attempts += 1
            pod = self.inspector.get_object("pod", job.pod_name) or {}
            phase = pod.get("status", {}).get("phase")
            reasons = container_reasons(pod)
            logger.debug(f"Attempt {job.attempts}/{attempts}: pod {job.pod_name} phase={phase}")

            if phase == "Succeeded":
                job.container_reason = reasons["terminated"]
                if reasons["terminated"] == "Completed":
                    job.state = ProbeState.SUCCEEDED
                else:
                    job.state = ProbeState.OTHER_FAILURE
                return job

            if phase == "Failed":
                job.container_reason = reasons["terminated"] or reasons["waiting"]
                job.state = ProbeState.OTHER_FAILURE
                return job

            last_pull_failure = phase == "Pending" and reasons["waiting"] in IMAGE_PULL_REASONS
            if last_pull_failure:
                job.container_reason = reasons["waiting"]
                if self.settings.stop_on_image_pull_failure:
                    job.state = ProbeState.IMAGE_PULL_FAILED
                    return job

            if job.attempts < attempts:
                self._sleep(self.settings.poll_interval_seconds)

        job.state = ProbeState.IMAGE_PULL_FAILED if last_pull_failure else ProbeState.TIMED_OUT
        return job

    def _verify_output(self, job: ProbeJob) -> ProbeJob:
        logs = self.inspector.get_pod_logs(job.pod_name) or ""
        if logs.strip() != self.settings.probe_success_token:
            logger.error(f"Unexpected output from job '{job.name}': {logs.strip()!r}")
            job.state = ProbeState.OTHER_FAILURE
        return job

    def interpret(self, job: ProbeJob) -> CheckResult:
        """Map the terminal state of the probe to a check result."""
        details = {
            "job": job.name,
            "pod": job.pod_name,
            "state": job.state.value,
            "attempts": job.attempts,
            "container_reason": job.container_reason,
        }

        if job.state is ProbeState.SUCCEEDED:
            logger.info("SUCCESS! Entitlement secret is configured correctly.")
            return CheckResult.passed(CHECK_NAME, "Entitlement secret is configured correctly", **details)

        if job.state is ProbeState.NOT_FOUND:
            message = f"No pod was created for job '{job.name}' while testing the entitlement secret"
            kind = FailureKind.STRUCTURAL_FAILURE
        elif job.state is ProbeState.TIMED_OUT:
            message = (
                f"Job '{job.name}' did not complete within {job.attempts} polling attempts"
            )
            kind = FailureKind.PROBE_TIMEOUT
        elif job.state is ProbeState.IMAGE_PULL_FAILED:
            message = (
                f"The pod '{job.pod_name}' failed with container_status='{job.container_reason}'. "
                "Entitlement secret is not configured correctly"
            )
            kind = FailureKind.STRUCTURAL_FAILURE
        else:
            message = f"Error validating job '{job.name}', the entitlement secret could not be verified"
            kind = FailureKind.STRUCTURAL_FAILURE

        logger.error(message)
        return CheckResult.failed(CHECK_NAME, message, kind=kind, **details)

    def run(self) -> CheckResult:
        """
        Check that a pull credential exists and actually pulls the product image.

        Returns:
            CheckResult for the entitlement check
        """
        logger.info("Checking whether the Entitlement secret or Global pull secret is configured correctly.")
        settings = self.settings

        has_entitlement = self.inspector.get_object("secret", settings.entitlement_secret) is not None
        has_global = (
            self.inspector.get_object(
                "secret", settings.global_pull_secret, namespace=settings.global_pull_secret_namespace
            )
            is not None
        )
        if not has_entitlement and not has_global:
            message = (
                f"Ensure that you have either a '{settings.entitlement_secret}' secret or a global "
                f"pull secret '{settings.global_pull_secret}' configured in the namespace "
                f"'{settings.global_pull_secret_namespace}'"
            )
            logger.error(message)
            return CheckResult.failed(CHECK_NAME, message)

        try:
            with self.probe_job(use_entitlement_secret=has_entitlement) as job:
                self._sleep(settings.job_start_delay_seconds)
                logger.info(f"Verifying if the job '{job.name}' completed successfully..")
                self.poll(job)
                if job.state is ProbeState.SUCCEEDED:
                    self._verify_output(job)
        except InspectionError as e:
            logger.error(str(e))
            return CheckResult.failed(CHECK_NAME, str(e))

        return self.interpret(job)
