"""davy - Docker-based sandbox runner for agent CLIs."""

from __future__ import annotations

__version__ = "0.3.0"
