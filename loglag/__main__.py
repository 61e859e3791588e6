"""Entry point for `python -m loglag`.

Usage:
    python -m loglag
    LOGLAG_CONFIG=/etc/loglag/config.yaml python -m loglag
"""

from __future__ import annotations

from loglag.app import run

run()
