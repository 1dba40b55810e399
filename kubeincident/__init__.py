"""kubeincident: root-cause-annotated incident tracking for Kubernetes pods."""

__version__ = "0.3.0"
