from __future__ import annotations

from .diagnostics import DiagnosticReport, DiagnosticStep, run_diagnostics
from .discovery import DiscoveryEngine, detect_subnet_prefix, probe_server, scan_subnet
from .gateway import CommandGateway, is_success
from .mock_server import MockCompanionServer, run_mock_server
from .registry import DeviceRegistry
from .synchronizer import StatusSynchronizer, probe_device, reconcile

__all__ = [
    "CommandGateway",
    "DeviceRegistry",
    "DiagnosticReport",
    "DiagnosticStep",
    "DiscoveryEngine",
    "MockCompanionServer",
    "StatusSynchronizer",
    "detect_subnet_prefix",
    "is_success",
    "probe_device",
    "probe_server",
    "reconcile",
    "run_diagnostics",
    "run_mock_server",
    "scan_subnet",
]
