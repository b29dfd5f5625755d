"""
Database initialization and seeding.
"""
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.topic import Topic
from app.models.user import User
from app.schemas.topic import TopicCreate
from app.services.catalog import TopicCatalog

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = [
    {
        "id": "sorting",
        "name": "Sorting Algorithms",
        "description": "Arrange elements in order and compare the classic approaches.",
        "icon": "bar-chart",
        "color": "#3b82f6",
        "order": 1,
        "estimated_time": 180,
        "difficulty": "beginner",
        "prerequisites": [],
        "algorithms": [
            {"id": "bubble-sort", "name": "Bubble Sort", "difficulty": "easy", "points": 10},
            {"id": "selection-sort", "name": "Selection Sort", "difficulty": "easy", "points": 10},
            {"id": "insertion-sort", "name": "Insertion Sort", "difficulty": "easy", "points": 10},
            {"id": "merge-sort", "name": "Merge Sort", "difficulty": "medium", "points": 20},
            {"id": "quick-sort", "name": "Quick Sort", "difficulty": "medium", "points": 20},
        ],
    },
    {
        "id": "searching",
        "name": "Searching Algorithms",
        "description": "Find elements in linear and sorted collections.",
        "icon": "search",
        "color": "#10b981",
        "order": 2,
        "estimated_time": 90,
        "difficulty": "beginner",
        "prerequisites": ["sorting"],
        "algorithms": [
            {"id": "linear-search", "name": "Linear Search", "difficulty": "easy", "points": 10},
            {"id": "binary-search", "name": "Binary Search", "difficulty": "easy", "points": 15},
        ],
    },
    {
        "id": "graphs",
        "name": "Graph Algorithms",
        "description": "Traverse graphs and find shortest paths.",
        "icon": "share-2",
        "color": "#8b5cf6",
        "order": 3,
        "estimated_time": 240,
        "difficulty": "intermediate",
        "prerequisites": ["searching"],
        "algorithms": [
            {"id": "bfs", "name": "Breadth-First Search", "difficulty": "medium", "points": 20},
            {"id": "dfs", "name": "Depth-First Search", "difficulty": "medium", "points": 20},
            {"id": "dijkstra", "name": "Dijkstra's Algorithm", "difficulty": "hard", "points": 30},
        ],
    },
]


def init_db(db: Session) -> None:
    """
    Initialize database with default data.

    Args:
        db: Database session
    """
    # Check if admin user exists
    admin = db.query(User).filter(User.email == settings.FIRST_ADMIN_EMAIL).first()
    if not admin:
        admin = User(
            email=settings.FIRST_ADMIN_EMAIL,
            username="admin",
            full_name="System Administrator",
            role="admin",
            is_active=True,
            progress={},
            stats={},
            learning_path={},
        )
        admin.set_password(settings.FIRST_ADMIN_PASSWORD)
        db.add(admin)
        db.commit()
        logger.info("Admin user created successfully")

    catalog = TopicCatalog(db)
    for topic_data in DEFAULT_TOPICS:
        if db.query(Topic).filter(Topic.id == topic_data["id"]).first():
            continue
        catalog.create_topic(TopicCreate(**topic_data))
