"""Bounded-concurrency job runner.

A fixed-size thread pool admits at most ``limit`` jobs at a time; as soon as
one finishes the next queued job starts. Completion callbacks run on the
calling thread, one at a time, so callers can update shared batch state
without extra locking.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from tqdm import tqdm

logger = logging.getLogger("ktxbrew.scheduler")


@dataclass
class JobOutcome:
    """Terminal state of one job: its return value or the exception it raised."""

    index: int
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_bounded(
    jobs: Sequence[Callable[[], Any]],
    limit: int,
    on_complete: Optional[Callable[[JobOutcome], None]] = None,
    desc: str = "jobs",
    progress: bool = True,
) -> List[JobOutcome]:
    """Run every job with at most ``limit`` in flight; return outcomes in job order.

    A failing job never cancels the others; its exception is captured in
    its outcome. Returns only after every job has finished.
    """
    outcomes: List[Optional[JobOutcome]] = [None] * len(jobs)
    if not jobs:
        return []
    limit = max(1, int(limit))

    with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="ktxbrew") as executor:
        futures = {executor.submit(job): i for i, job in enumerate(jobs)}
        with tqdm(total=len(futures), desc=desc, disable=not progress) as pbar:
            for future in as_completed(futures):
                index = futures[future]
                try:
                    outcome = JobOutcome(index, result=future.result())
                except Exception as exc:
                    logger.debug("Job %d raised %s: %s", index, type(exc).__name__, exc)
                    outcome = JobOutcome(index, error=exc)
                outcomes[index] = outcome
                if on_complete is not None:
                    on_complete(outcome)
                pbar.update(1)
    return outcomes
