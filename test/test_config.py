"""
Test settings defaults, environment overrides and the thresholds file.
"""
import pytest

from src.prereq_checker.config import DEFAULT_LARGE, DEFAULT_SMALL, load_settings
from src.prereq_checker.errors import ConfigurationError
from src.prereq_checker.models.cluster import Profile


def test_defaults():
    settings = load_settings(env={})

    assert settings.small_profile == DEFAULT_SMALL
    assert settings.large_profile == DEFAULT_LARGE
    assert settings.large_profile.vcpu == 162
    assert settings.poll_attempts == 25
    assert settings.poll_interval_seconds == 5
    assert settings.large_profile_min_workers == 6
    assert settings.stop_on_image_pull_failure is True


def test_environment_overrides():
    settings = load_settings(
        env={
            "AIOPS_PREREQ_POLL_ATTEMPTS": "10",
            "AIOPS_PREREQ_STOP_ON_IMAGE_PULL_FAILURE": "false",
            "AIOPS_PREREQ_LOG_LEVEL": "DEBUG",
            "UNRELATED": "1",
        }
    )

    assert settings.poll_attempts == 10
    assert settings.stop_on_image_pull_failure is False
    assert settings.log_level == "DEBUG"


def test_invalid_override_is_rejected():
    with pytest.raises(ConfigurationError, match="poll_attempts"):
        load_settings(env={"AIOPS_PREREQ_POLL_ATTEMPTS": "0"})


def test_missing_thresholds_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(env={"AIOPS_PREREQ_THRESHOLDS_FILE": str(tmp_path / "absent.yaml")})


def test_malformed_thresholds_file_is_a_configuration_error(tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text("large: [unclosed\n")

    with pytest.raises(ConfigurationError):
        load_settings(env={"AIOPS_PREREQ_THRESHOLDS_FILE": str(path)})


def test_thresholds_file(tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text("large:\n  node_count: 12\n  vcpu: 200\n  memory_gb: 400\n")

    settings = load_settings(env={"AIOPS_PREREQ_THRESHOLDS_FILE": str(path)})

    assert settings.large_profile.node_count == 12
    assert settings.large_profile.profile is Profile.LARGE
    assert settings.small_profile == DEFAULT_SMALL
