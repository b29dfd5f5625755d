"""Unit tests for daily_attempt.py"""
import pytest

from app.core.exceptions import ExternalServiceError
from app.core.progress.daily_attempt import (
    AttemptState,
    DailyAttemptTracker,
    ExecutionResult,
    HiddenTestCase,
    ProblemDefinition,
    source_file_name,
)
from app.core.progress.schemas import UserStats


class ScriptedExecutor:
    """Returns queued results in order; an exception in the queue is raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def run(self, language, stdin, source_file):
        self.calls.append((language, stdin, source_file.name))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def ok(stdout):
    return ExecutionResult(stdout=stdout)


@pytest.fixture
def problem():
    return ProblemDefinition(
        language="python",
        solution_code="print(int(input()) * 2)",
        test_cases=[
            HiddenTestCase(input="1", expected_output="2"),
            HiddenTestCase(input="5", expected_output="10"),
        ],
    )


class TestSourceFileName:
    @pytest.mark.parametrize(
        "language,name",
        [("python", "main.py"), ("Java", "Main.java"), ("cpp", "main.cpp"), ("c", "main.c"), ("javascript", "index.js")],
    )
    def test_names(self, language, name):
        assert source_file_name(language) == name


class TestGrade:
    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, problem):
        executor = ScriptedExecutor(ok("3"), ok("10"))
        tracker = DailyAttemptTracker(executor)

        passed, had_error, lines = await tracker.grade(problem, "code")

        assert (passed, had_error) == (0, False)
        assert len(executor.calls) == 1
        assert lines == ['Test Case 1: Failed\n  Expected: "2"\n  Got: "3"']

    @pytest.mark.asyncio
    async def test_runtime_error_stops(self, problem):
        executor = ScriptedExecutor(ExecutionResult(stderr="NameError: x"))
        passed, had_error, lines = await DailyAttemptTracker(executor).grade(problem, "code")

        assert had_error is True
        assert lines == ["Test Case 1 Error: NameError: x"]

    @pytest.mark.asyncio
    async def test_output_is_trimmed(self, problem):
        executor = ScriptedExecutor(ok("2\n"), ok("  10  "))
        passed, had_error, _ = await DailyAttemptTracker(executor).grade(problem, "code")
        assert (passed, had_error) == (2, False)

    @pytest.mark.asyncio
    async def test_file_naming_conflict_message(self, problem):
        executor = ScriptedExecutor(ExecutionResult(exception="main.py is the same as output file"))
        _, _, lines = await DailyAttemptTracker(executor).grade(problem, "code")
        assert lines == ["Test Case 1 Error: Compilation Error: A file naming conflict occurred."]


class TestSubmit:
    @pytest.mark.asyncio
    async def test_first_run_pass_awards_top_tier(self, problem):
        attempt, stats = AttemptState(), UserStats()
        tracker = DailyAttemptTracker(ScriptedExecutor(ok("2"), ok("10")))

        outcome = await tracker.submit(problem, attempt, stats, "code")

        assert outcome.accepted and outcome.passed and outcome.is_locked
        assert outcome.points_earned == 20
        assert outcome.solution_code == problem.solution_code
        assert outcome.last_results.startswith("[2 / 2 Test Cases Passed]\n\n")
        assert stats.rank.points == 20
        assert stats.daily_problem_points == 20
        assert attempt.last_submitted_code == "code"

    @pytest.mark.asyncio
    async def test_second_run_pass_awards_second_tier(self, problem):
        attempt, stats = AttemptState(), UserStats()
        tracker = DailyAttemptTracker(ScriptedExecutor(ok("0"), ok("2"), ok("10")))

        first = await tracker.submit(problem, attempt, stats, "wrong")
        assert first.passed is False
        assert first.is_locked is False
        assert first.solution_code is None
        assert first.points_earned == 0

        second = await tracker.submit(problem, attempt, stats, "right")
        assert second.passed is True
        assert second.points_earned == 15
        assert stats.daily_problem_points == 15

    @pytest.mark.asyncio
    async def test_two_failures_lock_with_consolation(self, problem):
        attempt, stats = AttemptState(), UserStats()
        tracker = DailyAttemptTracker(ScriptedExecutor(ok("0"), ok("0")))

        await tracker.submit(problem, attempt, stats, "wrong")
        outcome = await tracker.submit(problem, attempt, stats, "still wrong")

        assert outcome.passed is False
        assert outcome.is_locked is True
        assert outcome.points_earned == 10
        assert outcome.solution_code == problem.solution_code
        assert attempt.run_count == 2

    @pytest.mark.asyncio
    async def test_terminal_states_are_stable(self, problem):
        attempt, stats = AttemptState(), UserStats()
        executor = ScriptedExecutor(ok("2"), ok("10"))
        tracker = DailyAttemptTracker(executor)
        await tracker.submit(problem, attempt, stats, "code")
        snapshot = (attempt.model_dump(), stats.model_dump())

        again = await tracker.submit(problem, attempt, stats, "code")

        assert again.accepted is False
        assert again.rejection == "already_locked"
        assert (attempt.model_dump(), stats.model_dump()) == snapshot
        assert len(executor.calls) == 2

    @pytest.mark.asyncio
    async def test_passed_but_unlocked_is_rejected(self, problem):
        attempt = AttemptState(run_count=1, passed=True, points_awarded=20)
        outcome = await DailyAttemptTracker(ScriptedExecutor()).submit(problem, attempt, UserStats(), "code")
        assert outcome.rejection == "already_passed"

    @pytest.mark.asyncio
    async def test_run_limit_reached_locks_without_points(self, problem):
        attempt = AttemptState(run_count=2)
        stats = UserStats()
        outcome = await DailyAttemptTracker(ScriptedExecutor()).submit(problem, attempt, stats, "code")

        assert outcome.rejection == "run_limit"
        assert attempt.is_locked is True
        assert stats.daily_problem_points == 0

    @pytest.mark.asyncio
    async def test_points_awarded_only_once(self, problem):
        attempt = AttemptState(run_count=1, points_awarded=10)
        stats = UserStats()
        outcome = await DailyAttemptTracker(ScriptedExecutor(ok("2"), ok("10"))).submit(
            problem, attempt, stats, "code"
        )

        assert outcome.passed is True
        assert outcome.points_earned == 0
        assert attempt.points_awarded == 10
        assert stats.rank.points == 0

    @pytest.mark.asyncio
    async def test_execution_failure_does_not_consume_a_run(self, problem):
        attempt, stats = AttemptState(), UserStats()
        tracker = DailyAttemptTracker(
            ScriptedExecutor(ExternalServiceError("down", kind="unreachable"), ok("2"), ok("10"))
        )

        with pytest.raises(ExternalServiceError):
            await tracker.submit(problem, attempt, stats, "code")
        assert attempt.run_count == 0
        assert attempt.last_results is None

        outcome = await tracker.submit(problem, attempt, stats, "code")
        assert outcome.points_earned == 20
