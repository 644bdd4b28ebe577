import asyncio

import pytest

from interview_engine.interview.models import JobPosting
from interview_engine.interview.script import QuestionBank
from interview_engine.interview.testing import fast_settings


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def job() -> JobPosting:
    return JobPosting(id="job-7", title="Data Analyst", company_name="Globex", interview_mode="full")


@pytest.fixture
def script(job):
    return QuestionBank(3).build_script(job, "Sam")


@pytest.fixture
def settings():
    # Generous start/safety windows so manual fakes are not cut short
    return fast_settings(start_timeout_floor=1.0, safety_floor_seconds=2.0)
