"""Concrete probes — one module per kind of target."""

from .cache import RedisProbe
from .container import ContainerProbe, DockerDaemonProbe
from .coordination import EtcdProbe
from .database import SqlProbe
from .gpu import GpuInfo, GpuProbe, collect_gpu_info
from .http import HttpProbe
from .network import Endpoint, NetworkConnectivityProbe, PortUsageProbe, TcpProbe
from .system import ConfigFilesProbe, DiskUsageProbe
