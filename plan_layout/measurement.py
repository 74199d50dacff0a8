"""
Measurement port.

The paginator never lays out text itself. It asks a measurement surface
(anything able to lay out rich text with real font metrics, e.g. headless
Chromium) for the rendered height of a candidate page's content. Surfaces
hold transient render state, so each generation request owns its own.
"""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

from .common.error_handling import MeasurementUnavailable
from .models import CandidatePage, PageRole


@runtime_checkable
class MeasurementPort(Protocol):
    """Reports the rendered content height of a candidate page."""

    def measure(self, content: CandidatePage, role: PageRole) -> float:
        ...


def measure_checked(port: MeasurementPort, content: CandidatePage, role: PageRole) -> float:
    """
    Call the port and turn any failure into MeasurementUnavailable.

    A result that is not a finite, non-negative number counts as a failure
    of the surface.
    """
    try:
        height = port.measure(content, role)
    except MeasurementUnavailable:
        raise
    except Exception as e:
        raise MeasurementUnavailable(f"Measurement failed: {e}") from e

    try:
        height = float(height)
    except (TypeError, ValueError) as e:
        raise MeasurementUnavailable(f"Measurement returned a non-numeric height: {height!r}") from e

    if math.isnan(height) or math.isinf(height) or height < 0:
        raise MeasurementUnavailable(f"Measurement returned an invalid height: {height!r}")
    return height
