"""Unit tests for unlock.py"""
import pytest

from app.core.progress.schemas import (
    AlgorithmDefinition,
    AlgorithmProgress,
    LearningPath,
    ProgressStatus,
    ProgressStore,
    TopicDefinition,
    UserStats,
)
from app.core.progress.stats import StatsRecalculator
from app.core.progress.unlock import UnlockAdvancer, catalog_version


@pytest.fixture
def advancer():
    return UnlockAdvancer()


@pytest.fixture
def started(advancer, topic_defs):
    """Fresh user with searching and graphs locked behind their prerequisites."""
    store, path = ProgressStore(), LearningPath()
    advancer.initialize(store, path, topic_defs)
    store.get("searching").status = ProgressStatus.LOCKED
    store.get("graphs").status = ProgressStatus.LOCKED
    return store, path


def _complete_topic(store: ProgressStore, topic_id: str) -> None:
    for algo in store.get(topic_id).algorithms.values():
        algo.completed = True


class TestInitialize:
    def test_seeds_entries_and_current_topic(self, advancer, topic_defs):
        store, path = ProgressStore(), LearningPath()
        advancer.initialize(store, path, topic_defs)

        assert path.topic_order == ["sorting", "searching", "graphs"]
        assert path.current_topic == "sorting"
        assert set(store.get("sorting").algorithms) == {"bubble", "merge"}
        assert all(entry.status == ProgressStatus.AVAILABLE for _, entry in store.items())

    def test_globally_locked_topic_starts_locked(self, advancer, topic_defs):
        topic_defs[1] = topic_defs[1].model_copy(update={"is_globally_locked": True})
        store, path = ProgressStore(), LearningPath()
        advancer.initialize(store, path, topic_defs)
        assert store.get("searching").status == ProgressStatus.LOCKED

    def test_empty_catalog(self, advancer):
        store, path = ProgressStore(), LearningPath()
        advancer.initialize(store, path, [])
        assert path.current_topic is None
        assert len(store) == 0


class TestUnlockNextTopic:
    def test_unlocks_next_when_prerequisites_complete(self, advancer, started, catalog_map):
        store, path = started
        _complete_topic(store, "sorting")
        StatsRecalculator().recalculate(store, UserStats(), path)

        assert advancer.unlock_next_topic(store, path, catalog_map) is True
        assert store.get("searching").status == ProgressStatus.AVAILABLE
        assert path.current_topic == "searching"

    def test_only_one_step_ahead(self, advancer, started, catalog_map):
        store, path = started
        _complete_topic(store, "sorting")
        StatsRecalculator().recalculate(store, UserStats(), path)
        advancer.unlock_next_topic(store, path, catalog_map)

        assert store.get("graphs").status == ProgressStatus.LOCKED

    def test_prerequisite_in_completed_list_but_not_complete(self, advancer, started, catalog_map):
        store, path = started
        # completed_topics drifted from the stored completion
        store.get("sorting").completion = 90
        path.completed_topics.append("sorting")

        assert advancer.unlock_next_topic(store, path, catalog_map) is False
        assert store.get("searching").status == ProgressStatus.LOCKED
        assert path.current_topic == "sorting"

    def test_complete_but_not_listed(self, advancer, started, catalog_map):
        store, path = started
        store.get("sorting").completion = 100

        assert advancer.unlock_next_topic(store, path, catalog_map) is False
        assert store.get("searching").status == ProgressStatus.LOCKED

    def test_last_topic_is_a_no_op(self, advancer, started, catalog_map):
        store, path = started
        path.current_topic = "graphs"
        assert advancer.unlock_next_topic(store, path, catalog_map) is False

    def test_missing_current_topic_is_a_no_op(self, advancer, catalog_map):
        store, path = ProgressStore(), LearningPath()
        assert advancer.unlock_next_topic(store, path, catalog_map) is False

    def test_advances_into_already_available_topic(self, advancer, topic_defs, catalog_map):
        store, path = ProgressStore(), LearningPath()
        advancer.initialize(store, path, topic_defs)
        _complete_topic(store, "sorting")
        StatsRecalculator().recalculate(store, UserStats(), path)

        assert advancer.unlock_next_topic(store, path, catalog_map) is True
        assert path.current_topic == "searching"

    def test_next_topic_without_definition_unlocks(self, advancer, started):
        store, path = started
        _complete_topic(store, "sorting")
        StatsRecalculator().recalculate(store, UserStats(), path)

        assert advancer.unlock_next_topic(store, path, {}) is True
        assert store.get("searching").status == ProgressStatus.AVAILABLE

    def test_next_entry_without_status_follows_global_lock(self, advancer, started, topic_defs):
        catalog = {topic.id: topic for topic in topic_defs}
        catalog["searching"] = catalog["searching"].model_copy(update={"is_globally_locked": True})
        store, path = started
        store.get("searching").status = None
        _complete_topic(store, "sorting")
        StatsRecalculator().recalculate(store, UserStats(), path)

        assert advancer.unlock_next_topic(store, path, catalog) is True
        assert store.get("searching").status == ProgressStatus.AVAILABLE
        assert path.current_topic == "searching"


class TestSyncTopicOrder:
    def test_unchanged_catalog_is_a_no_op(self, advancer, started, topic_defs):
        store, path = started
        assert advancer.sync_topic_order(store, path, topic_defs) is False

    def test_reorder_and_new_topic(self, advancer, started, topic_defs):
        store, path = started
        trees = TopicDefinition(
            id="trees",
            name="Trees",
            order=0,
            algorithms=[AlgorithmDefinition(id="bst", name="BST", points=10)],
        )
        assert advancer.sync_topic_order(store, path, [trees] + topic_defs) is True
        assert path.topic_order == ["trees", "sorting", "searching", "graphs"]
        assert path.topic_order_version == catalog_version([trees] + topic_defs)
        assert store.get("trees").status == ProgressStatus.AVAILABLE
        # existing entries keep their status
        assert store.get("searching").status == ProgressStatus.LOCKED

    def test_new_algorithm_gets_default_record(self, advancer, started, topic_defs):
        store, path = started
        store.get("sorting").algorithms["bubble"] = AlgorithmProgress(completed=True)
        topic_defs[0] = topic_defs[0].model_copy(
            update={"algorithms": topic_defs[0].algorithms + [AlgorithmDefinition(id="heap", name="Heap Sort")]}
        )
        advancer.sync_topic_order(store, path, topic_defs)

        sorting = store.get("sorting")
        assert set(sorting.algorithms) == {"bubble", "merge", "heap"}
        assert sorting.algorithms["bubble"].completed is True

    def test_removed_current_topic_moves_to_first_unfinished(self, advancer, started, topic_defs):
        store, path = started
        path.completed_topics.append("searching")
        advancer.sync_topic_order(store, path, [topic_defs[1], topic_defs[2]])

        assert path.current_topic == "graphs"
