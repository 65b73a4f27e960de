"""
Shared pytest fixtures for scraper tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.schemas.scrape import TaskType
from src.services.scraper.core.engine import TaskRunner
from src.services.scraper.core.throttle import Throttle

from tests.fakes import EchoExtractor, FakeSession, FakeSessionFactory


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def session_factory(fake_session):
    return FakeSessionFactory(fake_session)


@pytest.fixture
def echo_extractors():
    """One echo extractor per task type."""
    return {
        TaskType.PROFILE: EchoExtractor({"name": "Jane Doe"}),
        TaskType.PROFILE_POSTS: EchoExtractor([]),
        TaskType.COMPANY: EchoExtractor({"name": "Acme"}),
        TaskType.COMPANY_POSTS: EchoExtractor([]),
        TaskType.JOBS_COMPANY: EchoExtractor([]),
    }


@pytest.fixture
def runner(echo_extractors, session_factory):
    """Task runner with fakes and a zero-delay throttle."""
    return TaskRunner(
        extractors=echo_extractors,
        session_factory=session_factory,
        throttle=Throttle(min_ms=0, max_ms=0),
    )
