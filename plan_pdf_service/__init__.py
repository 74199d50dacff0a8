"""
Session Plan PDF Service.

Measures, renders and exports session plans to PDF using Playwright/Chromium,
and optionally dispatches the finished PDF to an automation webhook.
"""

__version__ = "0.1.0"
