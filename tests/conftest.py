"""Shared fixtures: in-memory collaborators and a small test catalog."""

import logging

import pytest

from cleanforge.runner.subsystem import build_subsystem
from tests.mocks import FakePowerSchemeController, FakeServiceController, MemoryRegistryStore
from tests.mocks.catalog import BALANCED, make_catalog


@pytest.fixture
def store():
    return MemoryRegistryStore()


@pytest.fixture
def services():
    return FakeServiceController(
        run_states={"SysMain": "running", "WSearch": "running"},
        start_types={"SysMain": "auto", "WSearch": "auto"},
    )


@pytest.fixture
def power():
    return FakePowerSchemeController(active=BALANCED)


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def make_subsystem(catalog, backup_dir, store, services, power):
    """Build a fresh subsystem (a new process, as far as in-memory state goes)."""
    def factory(name="test"):
        return build_subsystem(name, catalog, backup_dir, store, services, power)
    return factory


@pytest.fixture
def subsystem(make_subsystem):
    return make_subsystem()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """configure_logging() detaches the package logger; undo it between tests."""
    yield
    logger = logging.getLogger("cleanforge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
