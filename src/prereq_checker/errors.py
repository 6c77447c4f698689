"""
Exceptions raised by the prerequisite checker.

Check-level problems are reported as CheckResult verdicts. Only invalid
settings (ConfigurationError) and a missing CLI or session (PreconditionUnmet)
stop the run before any check starts.
"""


class PrereqCheckError(Exception):
    """Base class for checker errors."""


class PreconditionUnmet(PrereqCheckError):
    """The oc CLI is missing or no cluster session is established."""


class InspectionError(PrereqCheckError):
    """A cluster command a check depends on did not succeed."""


class ConfigurationError(PrereqCheckError):
    """An AIOPS_PREREQ_* setting or the thresholds file is invalid."""
