"""probewatch — heterogeneous infrastructure health probes with a ranked verdict."""

__version__ = "0.1.0"
