"""
Test storage backend detection and the per-backend validators.
"""
import pytest

from src.prereq_checker.models.verdicts import Verdict
from src.prereq_checker.storage import (
    IbmCloudValidator,
    OdfValidator,
    PortworxValidator,
    StorageContext,
    StorageFusionValidator,
    detect,
    detect_backends,
)
from src.prereq_checker.storage import detector


def add_sc(inspector, name, expansion=True):
    body = {"provisioner": "example.com/csi"}
    if expansion is not None:
        body["allowVolumeExpansion"] = expansion
    inspector.add("storageclass", name, **body)


@pytest.fixture
def context(inspector, settings):
    return StorageContext(inspector, settings)


def test_volume_expansion_absent_and_false_are_the_same(inspector, context):
    add_sc(inspector, "absent-flag", expansion=None)
    add_sc(inspector, "false-flag", expansion=False)
    add_sc(inspector, "string-flag", expansion="true")
    add_sc(inspector, "true-flag", expansion=True)

    assert not context.volume_expansion_enabled("absent-flag")
    assert not context.volume_expansion_enabled("false-flag")
    assert not context.volume_expansion_enabled("string-flag")
    assert not context.volume_expansion_enabled("missing")
    assert context.volume_expansion_enabled("true-flag")


class TestOdf:
    def _install(self, inspector, phases=("Running", "Succeeded")):
        for i, phase in enumerate(phases):
            inspector.add_pod(f"odf-pod-{i}", "openshift-storage", phase)

    def test_pass(self, inspector, context):
        self._install(inspector)
        add_sc(inspector, "ocs-storagecluster-ceph-rbd")
        add_sc(inspector, "ocs-storagecluster-cephfs")

        assert OdfValidator().validate(context).verdict is Verdict.PASS

    def test_pod_not_running_fails(self, inspector, context):
        self._install(inspector, phases=("Running", "CrashLoopBackOff"))
        add_sc(inspector, "ocs-storagecluster-ceph-rbd")
        add_sc(inspector, "ocs-storagecluster-cephfs")

        result = OdfValidator().validate(context)
        assert result.verdict is Verdict.FAIL
        assert "odf-pod-1" in result.reason

    def test_missing_storage_class_warns(self, inspector, context):
        self._install(inspector)
        add_sc(inspector, "ocs-storagecluster-ceph-rbd")

        result = OdfValidator().validate(context)
        assert result.verdict is Verdict.WARN
        assert "ocs-storagecluster-cephfs" in result.reason

    def test_missing_volume_expansion_fails(self, inspector, context):
        self._install(inspector)
        add_sc(inspector, "ocs-storagecluster-ceph-rbd")
        add_sc(inspector, "ocs-storagecluster-cephfs", expansion=None)

        assert OdfValidator().validate(context).verdict is Verdict.FAIL


class TestIbmCloud:
    def test_pass(self, inspector, context):
        add_sc(inspector, "ibmc-block-gold")
        add_sc(inspector, "ibmc-file-gold-gid")
        assert IbmCloudValidator().validate(context).verdict is Verdict.PASS

    def test_one_class_missing_fails(self, inspector, context):
        add_sc(inspector, "ibmc-block-gold")
        result = IbmCloudValidator().validate(context)
        assert result.verdict is Verdict.FAIL
        assert "need to exist" in result.reason

    def test_expansion_disabled_fails(self, inspector, context):
        add_sc(inspector, "ibmc-block-gold")
        add_sc(inspector, "ibmc-file-gold-gid", expansion=False)
        result = IbmCloudValidator().validate(context)
        assert result.verdict is Verdict.FAIL
        assert "ibmc-file-gold-gid" in result.reason


class TestStorageFusion:
    def test_pass_on_matching_version(self, inspector, context):
        inspector.version = "4.12.30"
        add_sc(inspector, "ibm-spectrum-scale-sc")
        assert StorageFusionValidator().validate(context).verdict is Verdict.PASS

    def test_other_version_fails_regardless_of_storage_class(self, inspector, context):
        inspector.version = "4.13.12"
        add_sc(inspector, "ibm-spectrum-scale-sc")
        result = StorageFusionValidator().validate(context)
        assert result.verdict is Verdict.FAIL
        assert "4.12" in result.reason

    @pytest.mark.parametrize("version", ["4.120.1", "14.12.0", "4.1.2", "4.12"])
    def test_version_must_match_minor_release_exactly(self, inspector, context, version):
        inspector.version = version
        add_sc(inspector, "ibm-spectrum-scale-sc")
        expected = Verdict.PASS if version == "4.12" else Verdict.FAIL
        assert StorageFusionValidator().validate(context).verdict is expected

    def test_expansion_required(self, inspector, context):
        inspector.version = "4.12.30"
        add_sc(inspector, "ibm-spectrum-scale-sc", expansion=None)
        assert StorageFusionValidator().validate(context).verdict is Verdict.FAIL


class TestPortworx:
    def test_pass(self, inspector, context):
        add_sc(inspector, "portworx-fs")
        add_sc(inspector, "portworx-aiops")
        assert PortworxValidator().validate(context).verdict is Verdict.PASS

    def test_missing_class_warns(self, inspector, context):
        add_sc(inspector, "portworx-aiops")
        result = PortworxValidator().validate(context)
        assert result.verdict is Verdict.WARN
        assert "portworx-fs" in result.reason

    def test_both_missing_warns(self, inspector, context):
        assert PortworxValidator().validate(context).verdict is Verdict.WARN

    def test_present_class_without_expansion_fails(self, inspector, context):
        add_sc(inspector, "portworx-aiops", expansion=False)
        assert PortworxValidator().validate(context).verdict is Verdict.FAIL


def test_skip_does_not_touch_the_cluster(settings):
    class Untouchable:
        def __getattr__(self, name):
            raise AssertionError(f"cluster accessed: {name}")

    result = detect(StorageContext(Untouchable(), settings), skip=True)
    assert result.verdict is Verdict.SKIP


def test_no_backend_fails_without_running_validators(inspector, context, monkeypatch):
    calls = []
    for cls in (IbmCloudValidator, OdfValidator, PortworxValidator, StorageFusionValidator):
        monkeypatch.setattr(cls, "validate", lambda self, ctx: calls.append(self))

    result = detect(context)

    assert result.verdict is Verdict.FAIL
    assert result.details["backends"] == []
    assert calls == []


def test_detects_each_backend(inspector, context):
    add_sc(inspector, "ibmc-file-gold-gid")
    inspector.add_pod("rook-ceph-operator", "openshift-storage", "Running")
    inspector.add("storagecluster.core.libopenstorage.org", "px-cluster", "portworx", status={"phase": "Online"})
    add_sc(inspector, "ibm-spectrum-scale-sc")

    backends = [type(v) for v in detect_backends(context)]
    assert backends == [IbmCloudValidator, OdfValidator, PortworxValidator, StorageFusionValidator]


def test_portworx_not_ready_is_not_detected(inspector, context):
    inspector.add("storagecluster.core.libopenstorage.org", "px-cluster", "portworx", status={"phase": "Initializing"})
    assert detect_backends(context) == []


def test_fold_takes_worst_backend(inspector, context):
    # Portworx warns (one class missing), IBM Cloud passes
    add_sc(inspector, "ibmc-block-gold")
    add_sc(inspector, "ibmc-file-gold-gid")
    inspector.add("storagecluster.core.libopenstorage.org", "px", "portworx", status={"phase": "Running"})
    add_sc(inspector, "portworx-aiops")

    result = detect(context)
    assert result.verdict is Verdict.WARN
    assert [b["verdict"] for b in result.details["backends"]] == ["PASS", "WARNING"]


def test_failure_dominates(inspector, context):
    add_sc(inspector, "ibmc-block-gold", expansion=False)
    add_sc(inspector, "ibmc-file-gold-gid")
    inspector.add("storagecluster.core.libopenstorage.org", "px", "portworx", status={"phase": "Running"})
    add_sc(inspector, "portworx-aiops")

    result = detect(context)
    assert result.verdict is Verdict.FAIL
    assert result.name == detector.CHECK_NAME


def test_single_healthy_backend_passes(inspector, context):
    add_sc(inspector, "ibmc-block-gold")
    add_sc(inspector, "ibmc-file-gold-gid")
    assert detect(context).verdict is Verdict.PASS
