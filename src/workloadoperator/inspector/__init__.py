"""Throttled cache of the Kubernetes objects of a workload namespace.

The main entry point is `workloadoperator.inspector.inspector.Inspector`.
"""
