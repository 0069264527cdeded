"""
Langfuse tracing integration for the expense import service.

This module provides utilities to trace the steps of a CSV import (parse,
category resolution, bulk insert) for monitoring and debugging imports.
Tracing is optional: without LANGFUSE_PUBLIC_KEY every call is a no-op.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from langfuse import Langfuse
from langfuse.types import TraceContext

from .logging_utils import log_event


@dataclass
class TraceHandle:
    """Lightweight wrapper for Langfuse trace context."""

    client: Any
    trace_context: TraceContext
    root_span: Optional[object] = None

    def end(self):
        """End the root span if it is still open."""
        if self.root_span:
            try:
                self.root_span.end()
            except Exception as e:
                log_event("warning", "tracing.end_failed", error=str(e))
            finally:
                self.root_span = None


class LangfuseTracer:
    """Wrapper for Langfuse client with import-specific configuration."""

    def __init__(self):
        """Initialize the Langfuse tracer with environment variables."""
        self.enabled = os.getenv("LANGFUSE_PUBLIC_KEY") is not None
        self.client = None

        if self.enabled:
            try:
                debug_mode = os.getenv("LANGFUSE_DEBUG", "false").lower() == "true"
                self.client = Langfuse(
                    public_key=os.getenv("LANGFUSE_PUBLIC_KEY"),
                    secret_key=os.getenv("LANGFUSE_SECRET_KEY"),
                    host=os.getenv("LANGFUSE_HOST", "http://localhost:3001"),
                    debug=debug_mode,
                )
                log_event("info", "tracing.client_initialized", host=os.getenv("LANGFUSE_HOST"))
            except Exception as e:
                log_event("warning", "tracing.init_failed", error=str(e))
                self.enabled = False

    def is_enabled(self) -> bool:
        """Check if Langfuse tracing is enabled and available."""
        return self.enabled

    def create_trace(
        self,
        name: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[TraceHandle]:
        """
        Create a new trace for monitoring an import step.

        Args:
            name: Name of the operation (e.g., "csv_import.parse")
            user_id: Optional user ID for tracking
            metadata: Optional metadata dictionary

        Returns:
            TraceHandle or None if tracing is disabled
        """
        if not self.enabled or not self.client:
            return None

        try:
            trace_id = self.client.create_trace_id()
            trace_context = TraceContext(trace_id=trace_id, user_id=user_id or "system")

            root_span = self.client.start_span(
                trace_context=trace_context,
                name=name,
                metadata=metadata or {},
            )
            log_event("debug", "tracing.trace_created", name=name, trace_id=trace_id)
            return TraceHandle(
                client=self.client, trace_context=trace_context, root_span=root_span
            )
        except Exception as e:
            log_event("warning", "tracing.create_failed", name=name, error=str(e))
            return None

    def add_span(
        self,
        trace: Optional[TraceHandle],
        name: str,
        input_text: Optional[str] = None,
        output_text: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log a span (one import stage) to the trace.

        Args:
            trace: Trace object from create_trace()
            name: Name of the span (e.g., "parse_rows")
            input_text: Optional input data
            output_text: Optional output data
            metadata: Optional additional metadata
        """
        if not trace or not self.client:
            return

        try:
            span = self.client.start_span(
                trace_context=trace.trace_context,
                name=name,
                input=input_text or "",
                metadata=metadata or {},
            )
            if output_text:
                span.update(output=output_text)
            span.end()
        except Exception as e:
            log_event("warning", "tracing.span_failed", name=name, error=str(e))

    def end_trace(self, trace: Optional[TraceHandle]) -> None:
        """Finalize a trace by ending its root span and flushing."""
        if not trace:
            return
        try:
            trace.end()
            if self.client:
                self.client.flush()
        except Exception as e:
            log_event("warning", "tracing.flush_failed", error=str(e))


# Global instance
_tracer = None


def get_tracer() -> LangfuseTracer:
    """Get or create the global Langfuse tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = LangfuseTracer()
    return _tracer


def initialize_tracing():
    """Initialize Langfuse tracing (call this at app startup)."""
    tracer = get_tracer()
    if tracer.is_enabled():
        log_event("info", "tracing.enabled")
    else:
        log_event("info", "tracing.disabled")
