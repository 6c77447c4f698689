"""
Cluster Inspector - Reads OpenShift cluster state for the prerequisite checks
"""

from src.cluster_inspector.inspector import ClusterInspector

__all__ = ["ClusterInspector"]
