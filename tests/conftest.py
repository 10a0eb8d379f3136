import os
import sys
from pathlib import Path

import pytest

# Disable telemetry for tests
os.environ["DISABLE_CLOUD_TELEMETRY"] = "true"

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


class MockResource:
    """Simple closeable resource for testing."""

    def __init__(self, value: str = "test"):
        self.value = value
        self.closed = False
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    def __repr__(self) -> str:
        return f"MockResource({self.value}, closed={self.closed})"


class FailingCloseResource(MockResource):
    """Resource whose close() always raises."""

    def close(self) -> None:
        self.close_calls += 1
        raise OSError(f"cannot close {self.value}")


@pytest.fixture
def counter_factory():
    """Factory that labels instances in creation order and remembers them."""
    created: list[MockResource] = []

    def factory() -> MockResource:
        resource = MockResource(f"token#{len(created) + 1}")
        created.append(resource)
        return resource

    factory.created = created
    return factory


@pytest.fixture
def failing_close_factory():
    """Factory producing instances whose close() raises."""
    created: list[FailingCloseResource] = []

    def factory() -> FailingCloseResource:
        resource = FailingCloseResource(f"broken#{len(created) + 1}")
        created.append(resource)
        return resource

    factory.created = created
    return factory
