import pytest

from txpipe.crypto.service import SigningService


@pytest.fixture(scope="session")
def signing():
    """One native-backend SigningService shared by the whole test run."""
    service = SigningService(prefer_fast=False)
    service.initialize()
    return service
