import pytest

from certguard_service.main import SCORER, _startup, analyze_limiter

_startup()


# Reset scorer history, statistics and rate limits before each test for isolation
@pytest.fixture(autouse=True)
def _reset_service():
    SCORER.reset()
    analyze_limiter.reset()
    yield
