"""Unit tests for access_resolver.py"""
import pytest

from app.core.exceptions import NotFoundError
from app.core.progress.access_resolver import AccessResolver
from app.core.progress.schemas import (
    AlgorithmDefinition,
    AlgorithmProgress,
    ProgressStatus,
    ProgressStore,
    TopicDefinition,
    UserProgressEntry,
)


@pytest.fixture
def resolver():
    return AccessResolver()


@pytest.fixture
def topic():
    return TopicDefinition(
        id="sorting",
        name="Sorting",
        algorithms=[AlgorithmDefinition(id="bubble", name="Bubble Sort", points=10)],
    )


@pytest.fixture
def locked_topic(topic):
    return topic.model_copy(update={"is_globally_locked": True})


class TestEffectiveTopicStatus:
    def test_missing_entry_defaults_to_available(self, resolver, topic):
        assert resolver.effective_topic_status(topic, None) == ProgressStatus.AVAILABLE

    def test_missing_entry_under_global_lock_is_locked(self, resolver, locked_topic):
        assert resolver.effective_topic_status(locked_topic, None) == ProgressStatus.LOCKED

    def test_user_status_wins_without_global_lock(self, resolver, topic):
        entry = UserProgressEntry(status=ProgressStatus.LOCKED)
        assert resolver.effective_topic_status(topic, entry) == ProgressStatus.LOCKED

    def test_explicit_user_status_overrides_global_lock(self, resolver, locked_topic):
        entry = UserProgressEntry(status=ProgressStatus.IN_PROGRESS)
        assert resolver.effective_topic_status(locked_topic, entry) == ProgressStatus.IN_PROGRESS

    def test_stored_entry_without_status_keeps_global_lock(self, resolver, locked_topic):
        store = ProgressStore.from_raw({"sorting": {"completion": 0, "algorithms": {"bubble": {}}}})
        entry = store.get("sorting")

        assert entry.status is None
        assert resolver.effective_topic_status(locked_topic, entry) == ProgressStatus.LOCKED
        assert resolver.check_access(locked_topic, "bubble", entry).blocker == "topic"

    def test_stored_entry_with_invalid_status_uses_catalog_default(self, resolver, topic):
        entry = ProgressStore.from_raw({"sorting": {"status": "bogus"}}).get("sorting")
        assert resolver.effective_topic_status(topic, entry) == ProgressStatus.AVAILABLE

    def test_completed_topics_do_not_change_read_time_status(self, resolver, topic):
        entry = UserProgressEntry(status=ProgressStatus.LOCKED)
        status = resolver.effective_topic_status(topic, entry, completed_topics=["sorting"])
        assert status == ProgressStatus.LOCKED


class TestEffectiveAlgorithmStatus:
    def test_no_record_is_available(self, resolver):
        algo = AlgorithmDefinition(id="bubble")
        assert resolver.effective_algorithm_status(algo, None, ProgressStatus.AVAILABLE) == ProgressStatus.AVAILABLE

    def test_global_lock_only_yields_to_available(self, resolver):
        algo = AlgorithmDefinition(id="bubble", is_globally_locked=True)
        completed = AlgorithmProgress(status=ProgressStatus.COMPLETED)
        available = AlgorithmProgress(status=ProgressStatus.AVAILABLE)

        assert resolver.effective_algorithm_status(algo, completed, ProgressStatus.AVAILABLE) == ProgressStatus.LOCKED
        assert resolver.effective_algorithm_status(algo, available, ProgressStatus.AVAILABLE) == ProgressStatus.AVAILABLE

    @pytest.mark.parametrize("algo_status", ProgressStatus.ALGORITHM_VALUES)
    @pytest.mark.parametrize("globally_locked", [True, False])
    def test_locked_topic_dominates(self, resolver, algo_status, globally_locked):
        algo = AlgorithmDefinition(id="bubble", is_globally_locked=globally_locked)
        progress = AlgorithmProgress(status=algo_status)
        assert resolver.effective_algorithm_status(algo, progress, ProgressStatus.LOCKED) == ProgressStatus.LOCKED


class TestCheckAccess:
    def test_available(self, resolver, topic):
        verdict = resolver.check_access(topic, "bubble", None)
        assert verdict.has_access is True
        assert verdict.status == "available"
        assert verdict.blocker is None

    def test_topic_blocker(self, resolver, locked_topic):
        verdict = resolver.check_access(locked_topic, "bubble", None)
        assert verdict.has_access is False
        assert verdict.status == "locked (topic)"
        assert verdict.blocker == "topic"

    def test_algorithm_blocker(self, resolver, topic):
        entry = UserProgressEntry(algorithms={"bubble": AlgorithmProgress(status=ProgressStatus.LOCKED)})
        verdict = resolver.check_access(topic, "bubble", entry)
        assert verdict.has_access is False
        assert verdict.status == "locked (algorithm)"
        assert verdict.blocker == "algorithm"

    def test_completed_topic_grants_access(self, resolver, topic):
        entry = UserProgressEntry(status=ProgressStatus.COMPLETED, completion=100)
        assert resolver.check_access(topic, "bubble", entry).has_access is True

    def test_missing_topic_is_not_found(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.check_access(None, "bubble", None)

    def test_missing_algorithm_is_not_found(self, resolver, topic):
        with pytest.raises(NotFoundError):
            resolver.check_access(topic, "heap", None)


class TestDescribeTopicStatus:
    def test_locked_globally(self, resolver, locked_topic):
        assert resolver.describe_topic_status(locked_topic, None) == "Locked Globally"

    def test_locked_for_user(self, resolver, topic):
        entry = UserProgressEntry(status=ProgressStatus.LOCKED)
        assert resolver.describe_topic_status(topic, entry) == "Locked for User"

    def test_unlocked_override(self, resolver, locked_topic):
        entry = UserProgressEntry(status=ProgressStatus.AVAILABLE)
        assert resolver.describe_topic_status(locked_topic, entry) == "Unlocked for User (Available)"

    def test_plain_status(self, resolver, topic):
        entry = UserProgressEntry(status=ProgressStatus.IN_PROGRESS)
        assert resolver.describe_topic_status(topic, entry) == "In-progress"


class TestAccessibleSubjects:
    def test_subject_needs_one_unlocked_topic(self, resolver, topic):
        graphs = TopicDefinition(id="graphs", subject="Graph Theory", algorithms=[])
        trees = TopicDefinition(id="trees", subject="Graph Theory", algorithms=[])
        sorting = topic.model_copy(update={"subject": "DSA Visualizer"})
        store = ProgressStore.from_raw(
            {
                "sorting": {"status": "available"},
                "graphs": {"status": "locked"},
                "trees": {"status": "completed"},
            }
        )
        assert resolver.accessible_subjects([graphs, sorting, trees], store) == ["DSA Visualizer", "Graph Theory"]

    def test_all_topics_locked_hides_subject(self, resolver, topic):
        graphs = TopicDefinition(id="graphs", subject="Graph Theory", is_globally_locked=True, algorithms=[])
        sorting = topic.model_copy(update={"subject": "DSA Visualizer"})
        assert resolver.accessible_subjects([sorting, graphs], ProgressStore()) == ["DSA Visualizer"]

    def test_topics_without_subject_are_ignored(self, resolver, topic):
        assert resolver.accessible_subjects([topic], ProgressStore()) == []
