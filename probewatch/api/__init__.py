"""HTTP API — on-demand probe passes and the monitor's latest report."""

from .server import create_app
