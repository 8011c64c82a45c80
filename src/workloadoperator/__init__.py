"""A Kubernetes operator core for workload deployments: a namespace
inspector cache and a pod rotation decision engine.
"""
