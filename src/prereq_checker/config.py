"""
Checker settings.

Defaults are the Cloud Pak for AIOps 4.4 hardware requirement totals. Every value
can be overridden with an AIOPS_PREREQ_* environment variable (a .env file in the
working directory is honoured), and the profile table can be replaced by a YAML
file named in AIOPS_PREREQ_THRESHOLDS_FILE:

    small:
      node_count: 3
      vcpu: 62
      memory_gb: 140
    large:
      node_count: 10
      vcpu: 162
      memory_gb: 372
"""
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from src.prereq_checker.errors import ConfigurationError
from src.prereq_checker.models.cluster import Profile, ProfileThreshold

ENV_PREFIX = "AIOPS_PREREQ_"

DEFAULT_SMALL = ProfileThreshold(profile=Profile.SMALL, node_count=3, vcpu=62, memory_gb=140)
DEFAULT_LARGE = ProfileThreshold(profile=Profile.LARGE, node_count=10, vcpu=162, memory_gb=372)

PROBE_IMAGE = (
    "cp.icr.io/cp/cp4waiops/ai-platform-api-server"
    "@sha256:de3d762cb51ca3c2e2395c08b3dc9726316dc42a1f28de65019960abb527d100"
)


class CheckerSettings(BaseModel):
    """Static configuration of one checker run."""

    small_profile: ProfileThreshold = DEFAULT_SMALL
    large_profile: ProfileThreshold = DEFAULT_LARGE
    # Fewer workers than this can never host a large profile
    large_profile_min_workers: int = 6
    supported_architecture: str = "amd64"

    probe_job_name: str = "cp4aiops-entitlement-key-test-job"
    probe_image: str = PROBE_IMAGE
    probe_success_token: str = "SUCCESS"
    entitlement_secret: str = "ibm-entitlement-key"
    global_pull_secret: str = "pull-secret"
    global_pull_secret_namespace: str = "openshift-config"
    poll_attempts: int = Field(25, ge=1)
    poll_interval_seconds: float = Field(5.0, ge=0)
    stale_job_settle_seconds: float = Field(10.0, ge=0)
    job_start_delay_seconds: float = Field(3.0, ge=0)
    stop_on_image_pull_failure: bool = True

    odf_namespace: str = "openshift-storage"
    storage_fusion_platform_version: str = "4.12"

    command_timeout: int = 30
    log_level: str = "INFO"


def load_thresholds(path: Path) -> Dict[str, ProfileThreshold]:
    """
    Read a profile table from YAML.

    Returns:
        Dict with optional 'small_profile' and 'large_profile' entries
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    thresholds = {}
    for key, profile in (("small", Profile.SMALL), ("large", Profile.LARGE)):
        if key in data:
            thresholds[f"{key}_profile"] = ProfileThreshold(profile=profile, **data[key])
    return thresholds


def load_settings(env: Optional[Dict[str, str]] = None) -> CheckerSettings:
    """
    Build settings from defaults, environment variables and an optional thresholds file.

    Args:
        env: Mapping to read instead of os.environ (used by tests)

    Raises:
        ConfigurationError: If a value does not validate or the thresholds file cannot be read
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    overrides = {}
    for field_name in CheckerSettings.model_fields:
        if field_name in ("small_profile", "large_profile"):
            continue
        value = env.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value

    try:
        thresholds_file = env.get(f"{ENV_PREFIX}THRESHOLDS_FILE")
        if thresholds_file:
            overrides.update(load_thresholds(Path(thresholds_file)))

        # pydantic coerces the string values of the environment
        return CheckerSettings(**overrides)
    except (ValidationError, OSError, yaml.YAMLError, TypeError) as e:
        raise ConfigurationError(f"Invalid {ENV_PREFIX}* configuration: {e}") from e
