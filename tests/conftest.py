import pytest

from kindhooks import reset_registry


@pytest.fixture(autouse=True)
def clean_default_registry():
    """Every test starts and ends with an empty, unsealed default registry."""
    reset_registry()
    yield
    reset_registry()
