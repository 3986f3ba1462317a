"""Optional OpenTelemetry tracing for the API and the reminder poller.

Tracing stays off unless the ``observability`` extra is installed. Spans go
to ``OTEL_EXPORTER_OTLP_ENDPOINT`` when set and to the console when
``OTEL_TRACES_CONSOLE=true``; with neither, no provider is installed at all.
"""

from __future__ import annotations

import os
import sys
from contextlib import nullcontext
from typing import Any, Dict, List, Mapping, Optional

try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
except Exception:  # pragma: no cover - optional dependency resolution
    trace = None
    TracerProvider = None

from packages.scheduling.config import Settings


def _exporters(env: Mapping[str, str]) -> List[Any]:
    exporters: List[Any] = []
    endpoint = env.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        exporters.append(OTLPSpanExporter(endpoint=endpoint))
    if env.get("OTEL_TRACES_CONSOLE", "false").strip().lower() == "true":
        exporters.append(ConsoleSpanExporter())
    return exporters


def init_observability(
    service_name: str = "household-reminders",
    settings: Optional[Settings] = None,
    env: Optional[Mapping[str, str]] = None,
) -> bool:
    """Install a tracer provider; returns whether tracing is now active."""
    env = os.environ if env is None else env
    if "pytest" in sys.modules or trace is None:
        return False
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return True

    exporters = _exporters(env)
    if not exporters:
        return False

    attributes: Dict[str, Any] = {"service.name": service_name}
    if settings is not None:
        attributes["reminders.timezone"] = settings.timezone
        attributes["reminders.poll_seconds"] = settings.poll_seconds
    provider = TracerProvider(resource=Resource.create(attributes))
    for exporter in exporters:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return True


def get_tracer(name: str) -> Optional[Any]:
    return trace.get_tracer(name) if trace else None


def span(tracer: Optional[Any], name: str, attributes: Optional[Dict[str, Any]] = None):
    if tracer is None:
        return nullcontext()
    return tracer.start_as_current_span(name, attributes=attributes or {})


def annotate(current: Optional[Any], values: Mapping[str, Any]) -> None:
    """Copy counters onto an open span; a no-op when tracing is off."""
    if current is None:
        return
    for key, value in values.items():
        current.set_attribute(key, value)
