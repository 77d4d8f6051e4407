from __future__ import annotations

import asyncio

from core.enricher import DetailEnricher
from core.errors import HttpStatusError
from core.models import SubjectDetails


class CountingSubjects:
    """Fake subject client that tracks how many fetches overlap."""

    def __init__(self, failing: set[str] = frozenset()) -> None:
        self.in_flight = 0
        self.max_in_flight = 0
        self.completed: list[str] = []
        self._failing = failing

    async def fetch_notifications(self, page: int, per_page: int):
        raise AssertionError("not used")

    async def fetch_subject_details(self, url: str) -> SubjectDetails:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Later targets finish sooner so completion order differs from dispatch.
            await asyncio.sleep(0.001 * (10 - int(url.rsplit("/", 1)[1])))
        finally:
            self.in_flight -= 1
        self.completed.append(url)
        if url in self._failing:
            raise HttpStatusError(404, "Not Found")
        return SubjectDetails(html_url=url)


def _targets(count: int) -> list[tuple[str, str]]:
    return [(f"t{index}", f"https://api.github.com/repos/o/r/issues/{index}") for index in range(count)]


def test_sliding_window_caps_concurrency_at_four() -> None:
    subjects = CountingSubjects()
    applied: dict[str, SubjectDetails] = {}

    async def scenario() -> None:
        enricher = DetailEnricher(max_in_flight=4)
        enricher.start(subjects, _targets(6), applied.__setitem__)
        await enricher.wait()

    asyncio.run(scenario())

    assert subjects.max_in_flight == 4
    assert len(subjects.completed) == 6
    assert set(applied) == {f"t{index}" for index in range(6)}
    assert applied["t2"].html_url.endswith("/issues/2")


def test_single_failure_is_skipped_without_cancelling_others() -> None:
    failing = {"https://api.github.com/repos/o/r/issues/3"}
    subjects = CountingSubjects(failing=failing)
    applied: dict[str, SubjectDetails] = {}

    async def scenario() -> None:
        enricher = DetailEnricher()
        enricher.start(subjects, _targets(6), applied.__setitem__)
        await enricher.wait()

    asyncio.run(scenario())

    assert "t3" not in applied
    assert len(applied) == 5


def test_new_batch_supersedes_previous_one() -> None:
    applied: list[str] = []

    class GatedSubjects:
        def __init__(self) -> None:
            self.gate = asyncio.Event()

        async def fetch_notifications(self, page: int, per_page: int):
            raise AssertionError("not used")

        async def fetch_subject_details(self, url: str) -> SubjectDetails:
            await self.gate.wait()
            return SubjectDetails(html_url=url)

    async def scenario() -> tuple[int, int]:
        subjects = GatedSubjects()
        enricher = DetailEnricher()
        first = enricher.start(subjects, [("old", "https://x/old")], lambda tid, _: applied.append(tid))
        await asyncio.sleep(0)
        second = enricher.start(subjects, [("new", "https://x/new")], lambda tid, _: applied.append(tid))
        subjects.gate.set()
        await enricher.wait()
        return first, second

    first, second = asyncio.run(scenario())

    assert second > first
    assert applied == ["new"]


def test_unexpected_error_on_one_target_does_not_abort_the_batch() -> None:
    applied: dict[str, SubjectDetails] = {}

    class ExplodingSubjects(CountingSubjects):
        async def fetch_subject_details(self, url: str) -> SubjectDetails:
            if url.endswith("/0"):
                raise ValueError("corrupt body")
            return await super().fetch_subject_details(url)

    async def scenario() -> None:
        enricher = DetailEnricher()
        enricher.start(ExplodingSubjects(), _targets(6), applied.__setitem__)
        await enricher.wait()

    asyncio.run(scenario())

    assert set(applied) == {"t1", "t2", "t3", "t4", "t5"}
