"""
Worker-pool selection for the parallel strategy.

The parallel strategy needs three things from its execution substrate: launching
independent block tasks with a configurable width, independent random streams per
task (see random_streams), and a join before the reduction. A ``DeviceConfig``
names the pool backend and width; availability is checked before any simulation
starts and failures surface as ``SetupError``.
"""

import logging
import os
import platform
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from exotic_pricing.errors import SetupError

logger = logging.getLogger(__name__)


class Backend(Enum):
    """Worker pool backend."""

    THREAD = "thread"  # NumPy releases the GIL inside block kernels
    PROCESS = "process"


@dataclass(frozen=True)
class DeviceConfig:
    """
    Worker pool selector.

    Attributes
    ----------
    backend : Backend
        Thread or process pool
    n_workers : int
        Pool width; must not exceed the CPUs visible to the process

    Examples
    --------
    >>> device = DeviceConfig(Backend.THREAD, n_workers=1)
    >>> device.describe()["backend"]
    'thread'
    """

    backend: Backend
    n_workers: int

    @classmethod
    def from_name(cls, backend: Union[str, Backend], n_workers: int) -> "DeviceConfig":
        """Build from a backend name such as "thread" or "process"."""
        if isinstance(backend, Backend):
            return cls(backend=backend, n_workers=n_workers)
        try:
            return cls(backend=Backend(backend.lower()), n_workers=n_workers)
        except ValueError as e:
            available = ", ".join(b.value for b in Backend)
            raise SetupError(
                f"CRITICAL: unknown backend '{backend}'. Available: {available}"
            ) from e

    @property
    def available_workers(self) -> int:
        """CPUs visible to this process."""
        return os.cpu_count() or 1

    def validate(self) -> None:
        """
        Check the requested parallelism is available.

        Raises
        ------
        SetupError
            If the backend is unknown or the width is out of range
        """
        if not isinstance(self.backend, Backend):
            raise SetupError(f"CRITICAL: backend must be Backend, got {self.backend!r}")
        if self.n_workers < 1:
            raise SetupError(f"CRITICAL: n_workers must be >= 1, got {self.n_workers}")
        if self.n_workers > self.available_workers:
            raise SetupError(
                f"CRITICAL: requested {self.n_workers} workers but only "
                f"{self.available_workers} CPUs are available"
            )

    def create_executor(self) -> Executor:
        """
        Start the worker pool.

        Raises
        ------
        SetupError
            If the configuration is invalid or the pool cannot be started
        """
        self.validate()
        logger.debug(f"Starting {self.backend.value} pool with {self.n_workers} workers")
        try:
            if self.backend is Backend.THREAD:
                return ThreadPoolExecutor(
                    max_workers=self.n_workers, thread_name_prefix="mc-block"
                )
            return ProcessPoolExecutor(max_workers=self.n_workers)
        except (OSError, NotImplementedError, ValueError) as e:
            raise SetupError(f"CRITICAL: could not start {self.backend.value} pool: {e}") from e

    def describe(self) -> dict[str, Any]:
        """Device properties reported alongside a run."""
        return {
            "backend": self.backend.value,
            "n_workers": self.n_workers,
            "cpu_count": self.available_workers,
            "platform": platform.platform(),
            "processor": platform.processor() or platform.machine(),
            "python": platform.python_version(),
        }
