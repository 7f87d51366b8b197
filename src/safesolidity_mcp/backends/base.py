"""Native analysis backend interface.

A backend is a caller-owned handle with an explicit lifecycle::

    CREATED --start()--> READY | UNAVAILABLE | ERROR --dispose()--> DISPOSED

``analyze`` never raises; it returns one of the tagged outcomes
:class:`BackendOk`, :class:`BackendUnavailable` or :class:`BackendError`, and
the engine falls back to the heuristic path on anything but ``BackendOk``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from ..models import Finding

logger = logging.getLogger(__name__)


class BackendState(str, Enum):
    CREATED = "created"
    READY = "ready"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class BackendOk:
    findings: list[Finding]
    engine: str
    version: str


@dataclass(frozen=True)
class BackendUnavailable:
    reason: str = "backend not ready"


@dataclass(frozen=True)
class BackendError:
    reason: str


BackendOutcome = Union[BackendOk, BackendUnavailable, BackendError]


class BackendUnavailableError(RuntimeError):
    """Raised by :meth:`NativeBackend._probe` when the tool is not installed."""


class NativeBackend(ABC):
    """Contract every native analysis backend must satisfy."""

    name: str  # e.g. "slither"

    def __init__(self) -> None:
        self._state = BackendState.CREATED
        self.version: str | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is BackendState.READY

    # --- lifecycle ----------------------------------------------------------

    async def start(self) -> BackendState:
        """Probe the backend once and settle into READY, UNAVAILABLE or ERROR."""
        if self._state is not BackendState.CREATED:
            return self._state
        try:
            self.version = await self._probe()
            self._state = BackendState.READY
            logger.info("[%s] backend ready (version %s)", self.name, self.version)
        except BackendUnavailableError as exc:
            self.last_error = str(exc)
            self._state = BackendState.UNAVAILABLE
            logger.info("[%s] backend unavailable: %s", self.name, exc)
        except Exception as exc:
            self.last_error = str(exc)
            self._state = BackendState.ERROR
            logger.exception("[%s] backend failed to start", self.name)
        return self._state

    def dispose(self) -> None:
        if self._state is BackendState.DISPOSED:
            return
        try:
            self._cleanup()
        except Exception:
            logger.warning("[%s] cleanup failed", self.name, exc_info=True)
        self._state = BackendState.DISPOSED

    # --- analysis -----------------------------------------------------------

    async def analyze(self, source_code: str, *, timeout: int) -> BackendOutcome:
        if not self.is_ready:
            return BackendUnavailable(f"{self.name} backend is {self._state.value}")
        try:
            findings = await self._analyze(source_code, timeout=timeout)
        except TimeoutError as exc:
            logger.warning(str(exc))
            return BackendError(str(exc))
        except Exception as exc:
            logger.exception("[%s] analysis failed", self.name)
            return BackendError(f"{self.name} analysis failed: {exc}")
        return BackendOk(findings=findings, engine=self.name, version=self.version or "unknown")

    @abstractmethod
    async def _probe(self) -> str:
        """Check the backend can run; return its version string."""

    @abstractmethod
    async def _analyze(self, source_code: str, *, timeout: int) -> list[Finding]:
        """Run the backend and return findings located in *source_code*."""

    def _cleanup(self) -> None:
        """Release backend resources.  Default: nothing to release."""

    # --- shared helpers -----------------------------------------------------

    async def _exec(
        self,
        cmd: list[str],
        *,
        cwd: str | Path,
        timeout: int,
    ) -> tuple[str, str, int]:
        """Run *cmd* as a subprocess with a timeout.

        Returns (stdout, stderr, returncode).
        """
        logger.info("[%s] running: %s (timeout=%ds)", self.name, " ".join(cmd), timeout)
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
        try:
            stdout_b, stderr_b = await asyncio.wait_for(
                proc.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise TimeoutError(
                f"{self.name} timed out after {timeout}s"
            )
        stdout = stdout_b.decode(errors="replace")
        stderr = stderr_b.decode(errors="replace")
        logger.debug("[%s] rc=%d  stdout=%d chars  stderr=%d chars",
                     self.name, proc.returncode or 0, len(stdout), len(stderr))
        return stdout, stderr, proc.returncode or 0
