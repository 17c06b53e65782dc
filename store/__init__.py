"""ProbeGate Store — container instance registry consulted by instance scans."""
from store.instances import ContainerInstance, InstanceStore, InstanceNotFoundError

__all__ = ["ContainerInstance", "InstanceStore", "InstanceNotFoundError"]
