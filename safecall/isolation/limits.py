"""Resource limits for process isolation units.

`apply_resource_limits()` runs inside the freshly started child process,
before the captured callable. It sets hard rlimits so a runaway callable
is stopped by the kernel even while the deadline has not yet elapsed.

How the kernel stops a unit that crosses a limit:
  - RLIMIT_AS: allocations fail, which Python surfaces as MemoryError.
    The unit reports it as a raised error.
  - RLIMIT_CPU: the kernel sends SIGXCPU. The unit dies and the supervisor
    reports it as an abnormal termination carrying the signal name.

Platform notes:
  - Linux / macOS: `resource` module is available and rlimits are enforced.
  - Windows: `resource` module is unavailable. `apply_resource_limits()`
    is a no-op on Windows.

A limit of 0 (or less) leaves that rlimit untouched.
"""

import logging
import sys
from dataclasses import dataclass

from safecall.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceLimits:
    """Per-unit rlimits, resolved once from settings."""

    address_space_bytes: int = 0
    cpu_seconds: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResourceLimits":
        return cls(
            address_space_bytes=max(0, settings.rlimit_as_bytes),
            cpu_seconds=max(0, settings.rlimit_cpu_seconds),
        )

    @property
    def is_unlimited(self) -> bool:
        return self.address_space_bytes <= 0 and self.cpu_seconds <= 0


def apply_resource_limits(limits: ResourceLimits) -> None:
    """Set per-process resource limits in the current process. No-op on Windows."""
    if limits.is_unlimited or sys.platform == "win32":
        return

    try:
        import resource

        if limits.address_space_bytes > 0:
            resource.setrlimit(
                resource.RLIMIT_AS,
                (limits.address_space_bytes, resource.RLIM_INFINITY),
            )
        if limits.cpu_seconds > 0:
            # Soft limit raises SIGXCPU; the hard limit sits one second above
            # so the kernel never escalates straight to SIGKILL.
            resource.setrlimit(
                resource.RLIMIT_CPU,
                (limits.cpu_seconds, limits.cpu_seconds + 1),
            )

        logger.debug(
            "Resource limits applied: mem=%s cpu=%s",
            f"{limits.address_space_bytes / (1024**3):.1f}GB"
            if limits.address_space_bytes > 0
            else "unlimited",
            f"{limits.cpu_seconds}s" if limits.cpu_seconds > 0 else "unlimited",
        )

    except (ImportError, ValueError, OSError) as exc:
        logger.warning("Failed to apply resource limits: %s", exc)
