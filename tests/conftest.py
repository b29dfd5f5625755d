"""Shared fixtures for the LearnStack progress test suite."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SYNC_TOPIC_ORDER"] = "true"

from typing import Callable, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.dependencies import get_execution_client  # noqa: E402
from app.core.progress.daily_attempt import ExecutionResult, SourceFile  # noqa: E402
from app.core.progress.schemas import AlgorithmDefinition, TopicDefinition  # noqa: E402
from app.core.security import create_access_token, get_password_hash  # noqa: E402
from app.db.base import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base, User  # noqa: E402
from app.schemas.topic import TopicCreate  # noqa: E402
from app.services.catalog import TopicCatalog  # noqa: E402
from app.services.progress_service import ProgressService  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Hashing is slow; every fixture user shares one password
PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)

CATALOG = [
    {
        "id": "sorting",
        "name": "Sorting",
        "order": 1,
        "estimated_time": 60,
        "difficulty": "beginner",
        "prerequisites": [],
        "algorithms": [
            {"id": "bubble", "name": "Bubble Sort", "difficulty": "easy", "points": 10},
            {"id": "merge", "name": "Merge Sort", "difficulty": "medium", "points": 20},
        ],
    },
    {
        "id": "searching",
        "name": "Searching",
        "order": 2,
        "estimated_time": 45,
        "difficulty": "beginner",
        "prerequisites": ["sorting"],
        "algorithms": [
            {"id": "linear", "name": "Linear Search", "difficulty": "easy", "points": 10},
            {"id": "binary", "name": "Binary Search", "difficulty": "easy", "points": 15},
        ],
    },
    {
        "id": "graphs",
        "name": "Graphs",
        "subject": "Graph Theory",
        "order": 3,
        "estimated_time": 90,
        "difficulty": "intermediate",
        "prerequisites": ["searching"],
        "algorithms": [
            {"id": "bfs", "name": "Breadth-First Search", "difficulty": "medium", "points": 20},
        ],
    },
]


class FakeExecutor:
    """
    In-process stand-in for the code execution service.

    ``solve`` maps stdin to stdout; setting ``error`` makes every run raise it.
    """

    def __init__(self, solve: Optional[Callable[[str], str]] = None):
        self.solve = solve or (lambda stdin: stdin)
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, str]] = []

    async def run(self, language: str, stdin: str, source_file: SourceFile) -> ExecutionResult:
        self.calls.append({"language": language, "stdin": stdin, "file": source_file.name})
        if self.error is not None:
            raise self.error
        return ExecutionResult(stdout=self.solve(stdin) + "\n")


# ---------------------------------------------------------------------------
# Catalog definitions (no database)
# ---------------------------------------------------------------------------


@pytest.fixture
def topic_defs() -> List[TopicDefinition]:
    """The test catalog as engine definitions, in order."""
    return [
        TopicDefinition(
            id=topic["id"],
            name=topic["name"],
            order=topic["order"],
            prerequisites=topic["prerequisites"],
            algorithms=[
                AlgorithmDefinition(id=a["id"], name=a["name"], points=a["points"], difficulty=a["difficulty"])
                for a in topic["algorithms"]
            ],
        )
        for topic in CATALOG
    ]


@pytest.fixture
def catalog_map(topic_defs) -> Dict[str, TopicDefinition]:
    return {topic.id: topic for topic in topic_defs}


# ---------------------------------------------------------------------------
# Database and app
# ---------------------------------------------------------------------------


@pytest.fixture
def db_session() -> Session:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_catalog(db_session) -> TopicCatalog:
    catalog = TopicCatalog(db_session)
    for topic in CATALOG:
        catalog.create_topic(TopicCreate(**topic))
    return catalog


@pytest.fixture
def make_user(db_session, seeded_catalog) -> Callable[..., User]:
    """Factory for users with progress initialized from the seeded catalog."""

    def _make(username: str = "alice", role: str = "user") -> User:
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=PASSWORD_HASH,
            role=role,
            is_active=True,
        )
        ProgressService(db_session).initialize_user(user)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def client(db_session, executor) -> TestClient:
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_execution_client] = lambda: executor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
