"""
Provider Validators - Structural prerequisites of each supported storage backend.
"""
from typing import List, Optional

from loguru import logger

from src.prereq_checker.models.cluster import StorageProbeResult
from src.prereq_checker.models.verdicts import Verdict
from src.prereq_checker.platform_checks import minor_release
from src.prereq_checker.storage.context import StorageContext

STORAGE_DOCS = "https://ibm.biz/storage_consideration_440"

RUNNING_PHASES = ("Running", "Succeeded")


def _expansion_error(storage_class: str) -> str:
    return (
        f"StorageClass {storage_class} does not have allowVolumeExpansion enabled. "
        "This is required for all large profile installs and strongly recommended for "
        f"small profile installs. See \"Storage Class Requirements\" in {STORAGE_DOCS}"
    )


class StorageValidator:
    """Base class for storage backend validators."""

    backend: str = ""

    def validate(self, context: StorageContext) -> StorageProbeResult:
        raise NotImplementedError("Subclasses must implement validate()")

    def _result(self, verdict: Verdict, reason: str) -> StorageProbeResult:
        if verdict is Verdict.FAIL:
            logger.error(f"{self.backend}: {reason}")
        elif verdict is Verdict.WARN:
            logger.warning(f"{self.backend}: {reason}")
        else:
            logger.info(f"{self.backend}: {reason}")
        return StorageProbeResult(backend=self.backend, verdict=verdict, reason=reason)

    def _first_without_expansion(
        self, context: StorageContext, storage_classes: List[str]
    ) -> Optional[str]:
        for name in storage_classes:
            if not context.volume_expansion_enabled(name):
                return name
        return None


class OdfValidator(StorageValidator):
    """Red Hat OpenShift Data Foundation."""

    backend = "OpenShift Data Foundation"
    STORAGE_CLASSES = ["ocs-storagecluster-ceph-rbd", "ocs-storagecluster-cephfs"]

    def __init__(self, pods: Optional[List[str]] = None):
        """
        Args:
            pods: Pods found in the storage namespace during detection; listed
                  again when not given
        """
        self.pods = pods

    def validate(self, context: StorageContext) -> StorageProbeResult:
        namespace = context.settings.odf_namespace
        pods = self.pods if self.pods is not None else context.pod_names(namespace)

        for pod in pods:
            phase = context.pod_phase(pod, namespace)
            if phase not in RUNNING_PHASES:
                return self._result(
                    Verdict.FAIL,
                    f"Pod {pod} in namespace {namespace} is not Running or Completed (phase: {phase})",
                )
        logger.info(f"Pods in {namespace} are Running or Completed")

        for storage_class in self.STORAGE_CLASSES:
            if not context.storage_class_exists(storage_class):
                return self._result(Verdict.WARN, f"StorageClass {storage_class} does not exist")
            logger.info(f"{storage_class} exists.")

        missing = [
            name for name in self.STORAGE_CLASSES if not context.volume_expansion_enabled(name)
        ]
        if missing:
            return self._result(Verdict.FAIL, "; ".join(_expansion_error(name) for name in missing))

        return self._result(Verdict.PASS, "OpenShift Data Foundation is configured correctly")


class IbmCloudValidator(StorageValidator):
    """IBM Cloud block and file storage for ROKS."""

    backend = "IBM Cloud Storage"
    BLOCK_CLASS = "ibmc-block-gold"
    FILE_CLASS = "ibmc-file-gold-gid"

    def validate(self, context: StorageContext) -> StorageProbeResult:
        storage_classes = [self.BLOCK_CLASS, self.FILE_CLASS]

        if not all(context.storage_class_exists(name) for name in storage_classes):
            return self._result(
                Verdict.FAIL,
                f"Both {self.BLOCK_CLASS} and {self.FILE_CLASS} need to exist to use "
                f"IBM Cloud Storage. See \"Storage\" in {STORAGE_DOCS}",
            )

        without_expansion = self._first_without_expansion(context, storage_classes)
        if without_expansion:
            return self._result(Verdict.FAIL, _expansion_error(without_expansion))

        return self._result(Verdict.PASS, "IBM Cloud Storage is configured correctly")


class StorageFusionValidator(StorageValidator):
    """IBM Storage Fusion / Spectrum Scale Container Native. Only supported on one OCP release."""

    backend = "IBM Storage Fusion"
    STORAGE_CLASS = "ibm-spectrum-scale-sc"

    def validate(self, context: StorageContext) -> StorageProbeResult:
        required = context.settings.storage_fusion_platform_version
        version = context.platform_version() or ""

        if minor_release(version) != required:
            return self._result(
                Verdict.FAIL,
                f"Storage Fusion requires OCP {required}, cluster runs "
                f"{version or 'an unknown version'}",
            )

        if not context.volume_expansion_enabled(self.STORAGE_CLASS):
            return self._result(Verdict.FAIL, _expansion_error(self.STORAGE_CLASS))

        return self._result(Verdict.PASS, "IBM Storage Fusion looks fine")


class PortworxValidator(StorageValidator):
    """Portworx. A missing storage class is a warning; a present one must allow expansion."""

    backend = "Portworx"
    STORAGE_CLASSES = ["portworx-fs", "portworx-aiops"]

    def validate(self, context: StorageContext) -> StorageProbeResult:
        missing = []
        for storage_class in self.STORAGE_CLASSES:
            if context.storage_class_exists(storage_class):
                logger.info(f"StorageClass \"{storage_class}\" exists.")
                continue
            missing.append(storage_class)
            logger.warning(
                f"StorageClass \"{storage_class}\" does not exist. "
                f"See \"Portworx Storage\" in {STORAGE_DOCS}"
            )

        present = [name for name in self.STORAGE_CLASSES if name not in missing]
        without_expansion = self._first_without_expansion(context, present)
        if without_expansion:
            return self._result(Verdict.FAIL, _expansion_error(without_expansion))

        if missing:
            return self._result(Verdict.WARN, f"Missing StorageClass: {', '.join(missing)}")

        return self._result(Verdict.PASS, "Portworx is configured correctly")
