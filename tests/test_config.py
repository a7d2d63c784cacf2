"""
Configuration tests.
"""

import pytest
from pydantic import ValidationError

from leasekeeper.config import Settings


def test_ttl_is_capped():
    settings = Settings(lease_ttl_seconds=300, max_lease_ttl_seconds=600)

    assert settings.bounded_ttl(None) == 300
    assert settings.bounded_ttl(120) == 120
    assert settings.bounded_ttl(10_000) == 600


def test_rejects_unsupported_database_url():
    with pytest.raises(ValidationError):
        Settings(database_url="mysql://localhost/leasekeeper")


def test_rejects_non_positive_ttl():
    with pytest.raises(ValidationError):
        Settings(lease_ttl_seconds=0)

