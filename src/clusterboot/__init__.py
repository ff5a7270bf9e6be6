"""clusterboot: idempotent Kubernetes cluster bootstrap before GitOps takes over."""

__version__ = "0.1.0"
