"""
Daily problem attempt state machine.

no-attempt -> in-progress (run_count < limit) -> passed-locked | failed-locked.
Both locked states are terminal: no further runs, no further points.
"""
import logging
from typing import List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from app.core.progress.schemas import UserStats
from app.core.progress.stats import StatsRecalculator

logger = logging.getLogger(__name__)

SOURCE_FILE_NAMES = {
    "c": "main.c",
    "cpp": "main.cpp",
    "python": "main.py",
    "java": "Main.java",
}


def source_file_name(language: str) -> str:
    """File name the execution service expects for ``language``."""
    return SOURCE_FILE_NAMES.get((language or "").lower(), "index.js")


class SourceFile(BaseModel):
    name: str
    content: str


class ExecutionResult(BaseModel):
    """What the execution service returned for one run."""

    stdout: Optional[str] = None
    stderr: Optional[str] = None
    exception: Optional[str] = None


class CodeExecutor(Protocol):
    """Runs source code against one stdin. Raises ExternalServiceError on infrastructure failure."""

    async def run(self, language: str, stdin: str, source_file: SourceFile) -> ExecutionResult:
        ...


class HiddenTestCase(BaseModel):
    input: str = ""
    expected_output: str = ""


class ProblemDefinition(BaseModel):
    """The parts of a daily problem the tracker needs."""

    language: str = "javascript"
    solution_code: str = ""
    test_cases: List[HiddenTestCase] = Field(default_factory=list)
    points_first_attempt: int = 20
    points_second_attempt: int = 15
    points_on_failure: int = 10


class AttemptState(BaseModel):
    """Mutable state of one (user, problem) attempt."""

    run_count: int = 0
    is_locked: bool = False
    passed: bool = False
    points_awarded: int = 0
    last_submitted_code: Optional[str] = None
    last_results: Optional[str] = None


class SubmissionOutcome(BaseModel):
    """Result of a submission, accepted or rejected."""

    accepted: bool
    rejection: Optional[str] = None  # "already_locked", "already_passed", "run_limit"
    message: Optional[str] = None
    passed: bool = False
    is_locked: bool = False
    run_count: int = 0
    last_results: Optional[str] = None
    points_awarded: int = 0
    points_earned: int = 0
    solution_code: Optional[str] = None


class DailyAttemptTracker:
    """Enforces the run limit, grades submissions and awards tiered points once."""

    def __init__(self, executor: CodeExecutor, run_limit: int = 2):
        self.executor = executor
        self.run_limit = run_limit

    def _rejected(self, attempt: AttemptState, rejection: str, message: str) -> SubmissionOutcome:
        return SubmissionOutcome(
            accepted=False,
            rejection=rejection,
            message=message,
            passed=attempt.passed,
            is_locked=attempt.is_locked,
            run_count=attempt.run_count,
            last_results=attempt.last_results,
            points_awarded=attempt.points_awarded,
        )

    async def grade(self, problem: ProblemDefinition, code: str) -> Tuple[int, bool, List[str]]:
        """
        Run the hidden test cases in order, stopping at the first error or failure.

        Returns:
            Tuple of (passed_count, had_error, result lines)

        Raises:
            ExternalServiceError: If the execution service itself fails
        """
        source = SourceFile(name=source_file_name(problem.language), content=code)
        passed_count = 0
        had_error = False
        lines: List[str] = []

        for index, case in enumerate(problem.test_cases, start=1):
            result = await self.executor.run(problem.language, case.input or "", source)
            if result.exception or result.stderr:
                message = result.exception or result.stderr or ""
                if "is the same as output file" in message:
                    message = "Compilation Error: A file naming conflict occurred."
                lines.append(f"Test Case {index} Error: {message}")
                had_error = True
                break

            output = (result.stdout or "").strip()
            expected = (case.expected_output or "").strip()
            if output == expected:
                passed_count += 1
                lines.append(f"Test Case {index}: Passed")
            else:
                lines.append(f'Test Case {index}: Failed\n  Expected: "{expected}"\n  Got: "{output}"')
                break

        return passed_count, had_error, lines

    async def submit(
        self, problem: ProblemDefinition, attempt: AttemptState, stats: UserStats, code: str
    ) -> SubmissionOutcome:
        """
        Process one submission.

        ``attempt`` and ``stats`` are updated in place. An ExternalServiceError
        from the executor propagates before anything is mutated, so the run is
        not consumed.

        Args:
            problem: The daily problem
            attempt: The user's attempt state
            stats: The user's stats (rank and daily problem points)
            code: Submitted source code

        Returns:
            SubmissionOutcome
        """
        if attempt.is_locked:
            return self._rejected(attempt, "already_locked", "You have no more attempts for this problem.")
        if attempt.passed:
            return self._rejected(attempt, "already_passed", "You have already solved this problem.")
        if attempt.run_count >= self.run_limit:
            attempt.is_locked = True
            return self._rejected(
                attempt, "run_limit", f"Run limit ({self.run_limit}) exceeded. Problem is now locked."
            )

        passed_count, had_error, lines = await self.grade(problem, code)
        total = len(problem.test_cases)

        attempt.run_count += 1
        attempt.last_submitted_code = code
        attempt.passed = not had_error and passed_count == total
        attempt.last_results = f"[{passed_count} / {total} Test Cases Passed]\n\n" + "\n".join(lines)

        points = 0
        if attempt.passed:
            attempt.is_locked = True
            if attempt.points_awarded == 0:
                points = problem.points_first_attempt if attempt.run_count == 1 else problem.points_second_attempt
        elif attempt.run_count >= self.run_limit:
            attempt.is_locked = True
            if attempt.points_awarded == 0:
                points = problem.points_on_failure

        if points > 0:
            StatsRecalculator.add_rank_points(stats, points)
            stats.daily_problem_points = (stats.daily_problem_points or 0) + points
            attempt.points_awarded = points
            logger.info(f"Awarded {points} daily problem points (run {attempt.run_count})")

        return SubmissionOutcome(
            accepted=True,
            passed=attempt.passed,
            is_locked=attempt.is_locked,
            run_count=attempt.run_count,
            last_results=attempt.last_results,
            points_awarded=attempt.points_awarded,
            points_earned=points,
            solution_code=problem.solution_code if attempt.is_locked else None,
        )
