"""
Tests for worker-pool selection and setup failures.
"""

import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from exotic_pricing.errors import FailureStage, SetupError
from exotic_pricing.options.simulation.device import Backend, DeviceConfig


class TestDeviceConfig:
    """Tests for DeviceConfig."""

    @pytest.mark.parametrize("name,backend", [("thread", Backend.THREAD), ("PROCESS", Backend.PROCESS)])
    def test_from_name(self, name, backend):
        assert DeviceConfig.from_name(name, 1).backend is backend

    def test_from_enum(self):
        assert DeviceConfig.from_name(Backend.THREAD, 1) == DeviceConfig(Backend.THREAD, 1)

    def test_unknown_backend(self):
        with pytest.raises(SetupError, match="unknown backend 'gpu'"):
            DeviceConfig.from_name("gpu", 1)

    def test_zero_workers(self):
        with pytest.raises(SetupError, match="n_workers must be >= 1"):
            DeviceConfig(Backend.THREAD, 0).validate()

    def test_more_workers_than_cpus(self):
        requested = (os.cpu_count() or 1) + 1
        with pytest.raises(SetupError, match="CPUs are available") as exc_info:
            DeviceConfig(Backend.THREAD, requested).validate()
        assert exc_info.value.stage is FailureStage.SETUP

    def test_create_thread_executor(self):
        with DeviceConfig(Backend.THREAD, 1).create_executor() as executor:
            assert isinstance(executor, ThreadPoolExecutor)
            assert executor.submit(sum, [1, 2, 3]).result() == 6

    def test_create_executor_validates_first(self):
        with pytest.raises(SetupError):
            DeviceConfig(Backend.THREAD, 0).create_executor()

    def test_describe(self):
        properties = DeviceConfig(Backend.THREAD, 1).describe()
        assert properties["backend"] == "thread"
        assert properties["n_workers"] == 1
        assert properties["cpu_count"] == (os.cpu_count() or 1)
        assert {"platform", "processor", "python"} <= set(properties)
