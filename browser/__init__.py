"""
Browser module for the faucet conformance suite.

Provides Playwright-driven Chromium sessions for the UI checks:

- **BrowserManager** – lifecycle of the browser process and of one isolated
  context per UI session.

Submodules:
    instance: ``BrowserManager`` class.
"""

from .instance import BrowserManager

__all__ = ["BrowserManager"]
