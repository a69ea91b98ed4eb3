import pytest

from examprep.errors import GenerationError, ValidationError
from examprep.models.question import Difficulty
from examprep.services.generation_queue import GenerationQueue, RetryPolicy, SectionStatus
from examprep.services.qgen_service import SectionGenerationWorker


def _queue(generator, topics, sleep, policy=RetryPolicy()):
    return GenerationQueue(SectionGenerationWorker(generator), topics, Difficulty.medium, policy=policy, sleep=sleep)


@pytest.mark.anyio
async def test_failed_section_moves_to_tail_and_retries(generator, sleep):
    generator.fail_times = {"X": 2}
    queue = _queue(generator, ["X", "Y"], sleep)

    updates = []
    results = await queue.run_to_completion(updates.append)

    # X fails, Y runs, X fails again, then succeeds
    assert generator.calls == ["X", "Y", "X", "X"]
    assert sleep.delays == [2.0, 2.0]
    assert [(u.topic, u.status) for u in updates if u.status is not SectionStatus.loading] == [
        ("X", SectionStatus.error),
        ("Y", SectionStatus.success),
        ("X", SectionStatus.error),
        ("X", SectionStatus.success),
    ]
    assert queue.done
    assert [s.attempts for s in queue.sections] == [3, 1]
    # results stay in request order
    assert [r.questions[0].id for r in results] == ["X-1", "Y-1"]


@pytest.mark.anyio
async def test_retry_ceiling_raises(generator, sleep):
    generator.fail_times = {"X": 10}
    queue = _queue(generator, ["X"], sleep, policy=RetryPolicy(delay_seconds=0.5, max_attempts=3))

    with pytest.raises(GenerationError):
        await queue.run_to_completion()

    assert generator.calls == ["X", "X", "X"]
    assert sleep.delays == [0.5, 0.5]
    assert queue.sections[0].status is SectionStatus.error
    assert not queue.done


@pytest.mark.anyio
async def test_events_carry_attempt_numbers(generator, sleep):
    generator.fail_times = {"Physics": 1}
    queue = _queue(generator, ["Physics"], sleep)
    events = [u.to_event() async for u in queue.run()]
    assert events[0] == {"section": "Physics", "status": "loading", "attempt": 1}
    assert events[1]["status"] == "error" and "error" in events[1]
    assert events[-1] == {"section": "Physics", "status": "success", "attempt": 2, "questionCount": 2}


def test_results_before_done_raise(generator, sleep):
    queue = _queue(generator, ["A", "B"], sleep)
    with pytest.raises(GenerationError):
        queue.results()


@pytest.mark.parametrize("topics", [[], ["A", " "], ["A", "A "]])
def test_topics_validated(generator, sleep, topics):
    with pytest.raises(ValidationError):
        _queue(generator, topics, sleep)


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(delay_seconds=-1)
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    assert RetryPolicy().allows_retry(10_000)
    assert not RetryPolicy(max_attempts=2).allows_retry(2)
