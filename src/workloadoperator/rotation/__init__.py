"""Decide whether, and how, a workload member's pod has to be rotated.

The entry point is `workloadoperator.rotation.engine.is_rotation_required`.
"""
