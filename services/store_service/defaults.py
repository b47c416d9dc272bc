"""
Bundled default dataset seeded into an empty store.

The lab catalog is reconciled against durable storage on every cold load, so
a redeployed catalog reaches existing installs.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from utils.clock import format_timestamp

DEFAULT_USERS: List[Dict[str, Any]] = [
    {
        "user_id": "1",
        "name": "John Admin",
        "email": "admin@usaii.org",
        "role": "admin",
        "avatar": "https://images.pexels.com/photos/614810/pexels-photo-614810.jpeg?w=150",
        "created_at": "2024-01-01T00:00:00+00:00",
        "status": "active",
        "email_verified": True,
        "last_login": "2024-01-20T10:30:00+00:00",
    },
    {
        "user_id": "2",
        "name": "Sarah Creator",
        "email": "creator@usaii.org",
        "role": "creator",
        "avatar": "https://images.pexels.com/photos/415829/pexels-photo-415829.jpeg?w=150",
        "created_at": "2024-01-02T00:00:00+00:00",
        "status": "active",
        "email_verified": True,
        "last_login": "2024-01-19T14:20:00+00:00",
    },
    {
        "user_id": "3",
        "name": "Mike Student",
        "email": "student@usaii.org",
        "role": "student",
        "avatar": "https://images.pexels.com/photos/1222271/pexels-photo-1222271.jpeg?w=150",
        "created_at": "2024-01-03T00:00:00+00:00",
        "status": "active",
        "email_verified": True,
        "last_login": "2024-01-20T09:15:00+00:00",
    },
    {
        "user_id": "4",
        "name": "Emma Johnson",
        "email": "emma@usaii.org",
        "role": "student",
        "created_at": "2024-01-04T00:00:00+00:00",
        "status": "verified",
        "email_verified": True,
    },
    {
        "user_id": "5",
        "name": "Alex Wilson",
        "email": "alex@usaii.org",
        "role": "student",
        "created_at": "2024-01-05T00:00:00+00:00",
        "status": "new",
        "email_verified": False,
    },
    {
        "user_id": "6",
        "name": "Lisa Brown",
        "email": "lisa@usaii.org",
        "role": "creator",
        "created_at": "2024-01-06T00:00:00+00:00",
        "status": "disabled",
        "email_verified": True,
    },
]

DEFAULT_COURSES: List[Dict[str, Any]] = [
    {
        "course_id": "1",
        "name": "Machine Learning Fundamentals",
        "category": "AI/ML",
        "description": "Learn the basics of machine learning algorithms and applications",
        "level": "Beginner",
        "duration": 40,
        "tags": ["supervised-learning", "unsupervised-learning", "neural-networks"],
    },
    {
        "course_id": "2",
        "name": "Data Analysis with Python",
        "category": "Data Science",
        "description": "Master data analysis techniques using Python and popular libraries",
        "level": "Intermediate",
        "duration": 35,
        "tags": ["pandas", "numpy", "matplotlib", "statistics"],
    },
    {
        "course_id": "3",
        "name": "Python Web Development",
        "category": "Python",
        "description": "Build web applications using Python frameworks",
        "level": "Intermediate",
        "duration": 45,
        "tags": ["flask", "django", "apis", "databases"],
    },
]

DEFAULT_LABS: List[Dict[str, Any]] = [
    {
        "lab_id": "1",
        "title": "Linear Regression from Scratch",
        "description": "Implement gradient descent and fit a linear model without ML libraries",
        "course_id": "1",
        "creator_id": "2",
        "category": "AI/ML",
        "level": "Beginner",
        "lab_type": "course",
        "duration": 90,
        "instructions": "Load the housing dataset, implement the cost function, then train with gradient descent.",
        "resources": ["https://scikit-learn.org/stable/modules/linear_model.html"],
        "tags": ["regression", "gradient-descent", "numpy"],
        "created_at": "2024-01-10T00:00:00+00:00",
        "is_active": True,
        "expiration_hours": 40,
        "prerequisites": ["Basic Python"],
    },
    {
        "lab_id": "2",
        "title": "Exploratory Data Analysis with Pandas",
        "description": "Clean, summarise and visualise a real-world sales dataset",
        "course_id": "2",
        "creator_id": "2",
        "category": "Data Science",
        "level": "Intermediate",
        "lab_type": "course",
        "duration": 120,
        "instructions": "Profile missing values, engineer date features and plot monthly revenue.",
        "resources": ["https://pandas.pydata.org/docs/user_guide/index.html"],
        "tags": ["pandas", "matplotlib", "eda"],
        "created_at": "2024-01-11T00:00:00+00:00",
        "is_active": True,
        "expiration_hours": 48,
    },
    {
        "lab_id": "3",
        "title": "REST APIs with Flask",
        "description": "Build and test a small REST service backed by SQLite",
        "course_id": "3",
        "creator_id": "2",
        "category": "Web Development",
        "level": "Intermediate",
        "lab_type": "course",
        "duration": 150,
        "instructions": "Create CRUD endpoints for a todo resource and cover them with pytest.",
        "resources": ["https://flask.palletsprojects.com/"],
        "tags": ["flask", "rest", "sqlite"],
        "created_at": "2024-01-12T00:00:00+00:00",
        "is_active": True,
        "expiration_hours": 40,
    },
    {
        "lab_id": "4",
        "title": "Neural Network Practitioner Certification",
        "description": "Timed assessment on training and evaluating feed-forward networks",
        "course_id": "1",
        "creator_id": "2",
        "category": "AI/ML",
        "level": "Advanced",
        "lab_type": "certification",
        "duration": 120,
        "instructions": "Answer every task within the time limit; partial credit is awarded per task.",
        "resources": [],
        "tags": ["neural-networks", "certification", "pytorch"],
        "created_at": "2024-01-13T00:00:00+00:00",
        "is_active": True,
        "expiration_hours": 24,
        "prerequisites": ["Linear Regression from Scratch"],
        "certification_criteria": {"passing_score": 80, "max_attempts": 3, "time_limit": 120},
    },
    {
        "lab_id": "5",
        "title": "CI/CD Pipeline Capstone",
        "description": "Design a container build and deployment pipeline for a Python service",
        "creator_id": "2",
        "category": "DevOps",
        "level": "Advanced",
        "lab_type": "project",
        "duration": 600,
        "instructions": "Containerise the sample service, add a test stage and deploy on every tag.",
        "resources": ["https://docs.docker.com/"],
        "tags": ["docker", "ci", "deployment"],
        "created_at": "2024-01-14T00:00:00+00:00",
        "is_active": True,
        "expiration_hours": 168,
        "project_deliverables": ["Dockerfile", "Pipeline definition", "Deployment runbook"],
        "estimated_effort": "2-3 weeks",
    },
    {
        "lab_id": "6",
        "title": "Python Generators and Iterators",
        "description": "Write lazy data pipelines with generators and itertools",
        "creator_id": "6",
        "category": "Python",
        "level": "Beginner",
        "lab_type": "course",
        "duration": 45,
        "instructions": "Rewrite the list-based pipeline using generator functions.",
        "resources": ["https://docs.python.org/3/library/itertools.html"],
        "tags": ["generators", "itertools"],
        "created_at": "2024-01-15T00:00:00+00:00",
        "is_active": False,
        "expiration_hours": 40,
    },
]


def default_allocations(now: datetime) -> List[Dict[str, Any]]:
    """Sample allocations with timestamps relative to `now`"""
    def hours_ago(hours: int) -> str:
        return format_timestamp(now - timedelta(hours=hours))

    return [
        {
            "allocation_id": "1",
            "lab_id": "1",
            "user_id": "3",
            "allocated_by": "1",
            "allocated_at": hours_ago(45),  # past the 40h window
            "due_date": "2024-01-25T23:59:59+00:00",
            "status": "in-progress",
        },
        {
            "allocation_id": "2",
            "lab_id": "2",
            "user_id": "4",
            "allocated_by": "1",
            "allocated_at": hours_ago(2),
            "due_date": "2024-01-26T23:59:59+00:00",
            "status": "assigned",
        },
        {
            "allocation_id": "3",
            "lab_id": "3",
            "user_id": "3",
            "allocated_by": "1",
            "allocated_at": hours_ago(10),
            "due_date": "2024-01-27T23:59:59+00:00",
            "status": "assigned",
        },
        {
            "allocation_id": "4",
            "lab_id": "4",
            "user_id": "3",
            "allocated_by": "1",
            "allocated_at": hours_ago(50),  # expired window but already completed
            "due_date": "2024-01-28T23:59:59+00:00",
            "status": "completed",
            "completed_at": "2024-01-20T15:30:00+00:00",
            "score": 95,
        },
    ]
