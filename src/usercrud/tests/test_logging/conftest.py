import pytest

from usercrud.core.logging.builder import setup_logging
from usercrud.tests.test_fixtures.settings import make_test_settings


@pytest.fixture
def restore_logging():
    """Tests that install their own logging configuration get the test one back afterwards."""
    yield
    setup_logging(make_test_settings())
