"""Step-by-step connectivity checks against a companion server."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from .discovery import STATUS_PATH

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0


@dataclass
class DiagnosticStep:
    name: str
    success: bool
    message: str
    response_time_ms: int | None = None
    data: Any = None


@dataclass
class DiagnosticReport:
    steps: list[DiagnosticStep] = field(default_factory=list)

    @property
    def overall(self) -> bool:
        return bool(self.steps) and all(step.success for step in self.steps)


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


async def ping_server(
    ip: str,
    port: int,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DiagnosticStep:
    name = "Server Ping"
    url = f"http://{ip}:{port}{STATUS_PATH}"
    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        return DiagnosticStep(
            name, False, f"Connection timed out after {timeout:g} seconds"
        )
    except httpx.ConnectError:
        return DiagnosticStep(
            name,
            False,
            "Failed to connect to server. Make sure the server is running "
            "and the network is configured correctly.",
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return DiagnosticStep(name, False, f"Connection error: {exc}")

    elapsed = _elapsed_ms(start)
    if response.status_code != 200:
        return DiagnosticStep(
            name,
            False,
            f"Server responded with status {response.status_code}",
            elapsed,
        )
    try:
        data = response.json()
    except ValueError:
        return DiagnosticStep(
            name, False, "Server responded but sent invalid JSON", elapsed
        )
    return DiagnosticStep(
        name, True, f"Connected successfully ({elapsed}ms)", elapsed, data
    )


async def check_command_endpoint(
    ip: str,
    port: int,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DiagnosticStep:
    name = "Command Endpoint"
    url = f"http://{ip}:{port}/"
    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.post(
                url, json={"command": "get_status", "params": {}}
            )
    except httpx.TimeoutException:
        return DiagnosticStep(
            name, False, f"Command request timed out after {timeout:g} seconds"
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return DiagnosticStep(name, False, f"Command request error: {exc}")

    elapsed = _elapsed_ms(start)
    if response.status_code != 200:
        return DiagnosticStep(
            name,
            False,
            f"Command endpoint responded with status {response.status_code}",
            elapsed,
        )
    try:
        data = response.json()
    except ValueError:
        return DiagnosticStep(
            name, False, "Command endpoint responded but sent invalid JSON", elapsed
        )
    return DiagnosticStep(
        name, True, "Command endpoint working correctly", elapsed, data
    )


async def run_diagnostics(
    ip: str,
    port: int,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DiagnosticReport:
    report = DiagnosticReport()
    report.steps.append(await ping_server(ip, port, timeout, transport))
    report.steps.append(await check_command_endpoint(ip, port, timeout, transport))
    logger.debug(
        "Diagnostics for %s:%d: %s",
        ip,
        port,
        ", ".join(f"{s.name}={'ok' if s.success else 'failed'}" for s in report.steps),
    )
    return report
