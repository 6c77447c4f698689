"""
Prerequisite Checker - Determines if a cluster is ready for a Cloud Pak for AIOps install
"""

from src.prereq_checker.aggregator import ReadinessAggregator

__all__ = ["ReadinessAggregator"]
