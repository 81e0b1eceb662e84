"""Health subsystem — probe contract, runner, aggregator, monitor."""

from .aggregator import StatusAggregator, overall_status
from .engine import HealthEngine
from .models import HealthReport, HealthStatus, ProbeResult
from .monitor import Monitor, MonitorState
from .probe import BlockingProbe, Probe
from .runner import ProbeConfigError, ProbeRunner
