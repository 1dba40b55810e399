"""Logging and metrics for kubeincident."""
