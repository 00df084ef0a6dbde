"""Kubernetes operator for NiFi clusters backed by a ZooKeeper ensemble."""

__version__ = "0.1.0"
