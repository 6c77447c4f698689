"""
Command line entry point for the Cloud Pak for AIOps prerequisite checker.

Usage:
    aiops-prereq        Run all checks
    aiops-prereq -o     Skip the storage provider check (alternate storage providers)
    aiops-prereq -h     Print the help message
"""
import argparse
import sys
from typing import List, Optional

from loguru import logger

from src.cluster_inspector.inspector import ClusterInspector
from src.prereq_checker.aggregator import ReadinessAggregator
from src.prereq_checker.config import load_settings
from src.prereq_checker.errors import ConfigurationError, PreconditionUnmet

DESCRIPTION = """\
Ensures that the technical prerequisites for IBM Cloud Pak for AIOps version 4.4 are met.

Before you run this tool, you will need:
 1. OpenShift (oc) command line interface (CLI)
 2. To be logged in to your cluster with oc login
 3. To be in the project (namespace) you have installed or will install the product in
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aiops-prereq",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-o",
        dest="skip_storage_check",
        action="store_true",
        help="Skips storageclass checks when using alternate storage providers",
    )
    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the checker.

    Returns:
        0 when no check failed, 1 otherwise (including a missing session or invalid settings)
    """
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    configure_logging(settings.log_level)

    inspector = ClusterInspector(timeout=settings.command_timeout)
    aggregator = ReadinessAggregator(inspector, settings)

    try:
        report = aggregator.run(skip_storage_check=args.skip_storage_check)
    except PreconditionUnmet as e:
        logger.error(str(e))
        return 1

    print(report.render())
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
