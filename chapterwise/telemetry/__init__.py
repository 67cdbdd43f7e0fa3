"""Telemetry and observability helpers.

This package emits deterministic run events for auditing chapter processing.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
