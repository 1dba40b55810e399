"""Entry point for `python -m kubeincident`."""

from kubeincident.app import run

run()
