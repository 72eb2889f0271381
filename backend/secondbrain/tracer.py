"""
Follow-Through Tracer

Step-by-step execution tracing for the capture pipeline.
Shows how a message moves through the state store, and how an
extraction run walks its stages, as human-readable log lines.
"""
import logging
from typing import Any
from datetime import datetime

from .config import settings

# Dedicated logger for follow-through tracing
tracer = logging.getLogger("followthrough")


def _preview(data: Any, max_len: int = 50) -> str:
    """Create a short preview of data."""
    if data is None:
        return "<None>"
    text = str(data)
    if len(text) > max_len:
        return f"{text[:max_len]}..."
    return text


def _emit(icon: str, label: str, module: str, detail: str = "") -> None:
    if not settings.follow_through:
        return
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] {icon} [{module}] {label}"
    if detail:
        line = f"{line}: {detail}"
    tracer.info(line)


def trace_input(module: str, input_name: str, value: Any):
    """Log an input value entering a module."""
    _emit("→", f"INPUT {input_name}", module, _preview(value))


def trace_step(module: str, description: str):
    """Log a general step in processing."""
    _emit("•", "STEP", module, description)


def trace_stage(module: str, stage: str, detail: str = ""):
    """Log an extraction run entering a new stage."""
    _emit("▶", f"STAGE {stage.upper()}", module, detail)


def trace_result(module: str, function: str, success: bool, result_preview: Any = None):
    """Log the result of a call."""
    status = "✓ SUCCESS" if success else "✗ FAILED"
    detail = f"{function}() {status}"
    if result_preview is not None:
        detail += f" => {_preview(result_preview)}"
    _emit("◀", "RESULT", module, detail)


def trace_output(module: str, output_name: str, value: Any):
    """Log an output value leaving a module."""
    _emit("←", f"OUTPUT {output_name}", module, _preview(value))


def setup_follow_through_logging():
    """Configure the follow-through logger."""
    if settings.follow_through:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter('%(message)s'))

        tracer.addHandler(handler)
        tracer.setLevel(logging.INFO)
        tracer.propagate = False  # Don't propagate to root logger

        tracer.info("=" * 50)
        tracer.info("  FOLLOW-THROUGH MODE ENABLED")
        tracer.info("=" * 50)
