"""
Shared pytest fixtures for the redis_migrate tests.
"""

import pytest

from redis_migrate.exceptions import StoreWriteError, TypeResolutionError

from tests.doubles import ListRecorder, PipeParser, RecordingDestination


@pytest.fixture
def destination():
    return RecordingDestination()


@pytest.fixture
def recorder():
    return ListRecorder()


@pytest.fixture
def parser():
    return PipeParser()


@pytest.fixture
def type_error():
    return TypeResolutionError("lookup failed")


@pytest.fixture
def write_error():
    return StoreWriteError("READONLY You can't write against a read only replica.")
