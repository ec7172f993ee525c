from .collaborators import Collaborators as Collaborators
from .http_traffic_prober import HTTPTrafficProber as HTTPTrafficProber
from .kubernetes_cluster import KubernetesCluster as KubernetesCluster
from .protocols import (
    LogSource as LogSource,
    ServiceRegistry as ServiceRegistry,
    TrafficProber as TrafficProber,
    WorkloadController as WorkloadController,
)
