import logging
import types
from typing import Generator

import pytest
import numpy as np

from talker import config, system, instancing
from . import MemoryFileSystem

# some logging to turn on if we like
#logging.getLogger("talker.scoring").level = logging.DEBUG
#logging.getLogger("talker.rule_parser").level = logging.DEBUG

@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)

@pytest.fixture
def settings() -> types.SimpleNamespace:
    # a private copy so tests can tweak settings
    return config.read_config()

@pytest.fixture
def file_system() -> MemoryFileSystem:
    return MemoryFileSystem()

@pytest.fixture
def response_system(rng:np.random.Generator, file_system:MemoryFileSystem, settings:types.SimpleNamespace) -> system.ResponseSystem:
    return system.ResponseSystem(rng, file_system, settings)

@pytest.fixture
def default_system(rng:np.random.Generator, file_system:MemoryFileSystem, settings:types.SimpleNamespace) -> Generator[instancing.DefaultResponseSystem, None, None]:
    default_system = instancing.DefaultResponseSystem(rng, file_system, settings)
    yield default_system
    default_system.shutdown()
