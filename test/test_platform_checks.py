"""
Test the OpenShift version check and operator presence checks.
"""
import pytest

from src.prereq_checker.platform_checks import (
    CERT_MANAGER_CHECK,
    LICENSING_CHECK,
    check_cert_manager,
    check_licensing,
    check_ocp_version,
)
from src.prereq_checker.models.verdicts import Verdict


@pytest.mark.parametrize(
    "version, fips, expected",
    [
        ("4.12.30", False, Verdict.PASS),
        ("4.13.12", True, Verdict.PASS),
        ("4.14.1", False, Verdict.PASS),
        ("4.11.44", False, Verdict.PASS),
        ("4.11.44", True, Verdict.FAIL),
        ("4.10.67", False, Verdict.FAIL),
        ("4.15.0", False, Verdict.FAIL),
        ("5", False, Verdict.FAIL),
    ],
)
def test_ocp_version(inspector, version, fips, expected):
    inspector.version = version
    inspector.fips = fips
    assert check_ocp_version(inspector).verdict is expected


def test_ocp_414_mentions_architecture(inspector):
    inspector.version = "4.14.1"
    assert "AMD64" in check_ocp_version(inspector).message


def test_unreadable_version_fails(inspector):
    inspector.version = None
    assert check_ocp_version(inspector).verdict is Verdict.FAIL


def test_does_not_match_longer_minor(inspector):
    inspector.version = "4.120.1"
    assert check_ocp_version(inspector).verdict is Verdict.FAIL


@pytest.mark.parametrize(
    "phase, expected",
    [
        ("Succeeded", Verdict.PASS),
        ("Pending", Verdict.PASS),
        ("Failed", Verdict.FAIL),
        ("Installing", Verdict.FAIL),
        ("", Verdict.FAIL),
    ],
)
def test_cert_manager_phase(inspector, phase, expected):
    inspector.operators = [{"name": "cert-manager.v1.11.1", "namespace": "cert-manager-operator", "phase": phase}]
    result = check_cert_manager(inspector)
    assert result.verdict is expected
    assert result.name == CERT_MANAGER_CHECK


def test_missing_operator_fails(inspector):
    inspector.operators = [{"name": "cert-manager.v1.11.1", "namespace": "cert-manager", "phase": "Succeeded"}]
    result = check_licensing(inspector)

    assert result.verdict is Verdict.FAIL
    assert result.name == LICENSING_CHECK
    assert "licensing-operator" in result.message


def test_operator_details_are_recorded(inspector):
    inspector.operators = [
        {"name": "ibm-licensing-operator.v4.2.1", "namespace": "ibm-licensing", "phase": "Succeeded"}
    ]
    result = check_licensing(inspector)

    assert result.verdict is Verdict.PASS
    assert result.details == {
        "operator": "ibm-licensing-operator.v4.2.1",
        "namespace": "ibm-licensing",
        "phase": "Succeeded",
    }
