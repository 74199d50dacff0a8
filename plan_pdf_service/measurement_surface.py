"""
Playwright measurement surface.

Lays out candidate page content in headless Chromium with the document's
own stylesheet and reports the rendered height. Each generation request
opens its own surface; a surface is not safe to share between concurrent
layout passes.

Usage:
    with PlaywrightMeasurementSurface(geometry) as surface:
        layout = layout_document(blocks, note, surface, geometry)
"""

import logging
from typing import Optional

from plan_layout.budget import PageGeometry
from plan_layout.common.error_handling import MeasurementUnavailable, log_on_exception
from plan_layout.models import CandidatePage, PageRole

from .pdf_helpers import build_measurement_shell, render_candidate_html

logger = logging.getLogger(__name__)

MEASURE_SCRIPT = """
([html, role]) => {
    const root = document.getElementById("measure-root");
    root.dataset.role = role;
    root.innerHTML = html;
    return root.scrollHeight;
}
"""


class PlaywrightMeasurementSurface:
    """Measurement port backed by a Chromium page (sync Playwright API)."""

    def __init__(self, geometry: PageGeometry, headless: bool = True, timeout_ms: int = 30000):
        self.geometry = geometry
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright = None
        self._browser = None
        self._page = None

    def open(self) -> "PlaywrightMeasurementSurface":
        """
        Launch Chromium and load the measurement shell.

        Raises:
            MeasurementUnavailable: Playwright/Chromium could not be started
        """
        from playwright.sync_api import sync_playwright

        try:
            with log_on_exception(logger, "Measurement surface startup", level=logging.ERROR):
                self._playwright = sync_playwright().start()
                self._browser = self._playwright.chromium.launch(headless=self.headless)
                self._page = self._browser.new_page(
                    viewport={
                        "width": int(self.geometry.page_width),
                        "height": int(self.geometry.page_height),
                    }
                )
                self._page.set_default_timeout(self.timeout_ms)
                self._page.set_content(build_measurement_shell(self.geometry), wait_until="networkidle")
                self._page.emulate_media(media="print")
        except Exception as e:
            self.close()
            raise MeasurementUnavailable(f"Measurement surface failed to initialize: {e}") from e

        logger.debug("Measurement surface ready")
        return self

    def measure(self, content: CandidatePage, role: PageRole) -> float:
        """
        Rendered height of the candidate content in CSS px.

        Raises:
            MeasurementUnavailable: The surface is not open or Chromium failed
        """
        if self._page is None:
            raise MeasurementUnavailable("Measurement surface is not open")

        from playwright.sync_api import Error as PlaywrightError

        try:
            height = self._page.evaluate(MEASURE_SCRIPT, [render_candidate_html(content), role.value])
        except PlaywrightError as e:
            raise MeasurementUnavailable(f"Measurement failed: {e}") from e
        return float(height)

    def close(self) -> None:
        # Best effort: a browser that died mid-request may refuse to close
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception as e:
                logger.warning(f"Failed to close measurement browser: {e}")
            self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as e:
                logger.warning(f"Failed to stop Playwright: {e}")
            self._playwright = None
        self._page = None

    def __enter__(self) -> "PlaywrightMeasurementSurface":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
