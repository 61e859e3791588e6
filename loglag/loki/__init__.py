"""Loki log backend access for loglag.

Submodules:
    prober    -- TailProber: one-shot websocket tail confirmation per pod.
    readiness -- check_ready: HTTP ``/ready`` check run once at startup.
"""

from loglag.loki.prober import ProbeError, TailProber, build_tail_url
from loglag.loki.readiness import check_ready

__all__ = ["ProbeError", "TailProber", "build_tail_url", "check_ready"]
