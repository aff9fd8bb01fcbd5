"""
Demo data for local development.

Seeding writes straight through the storage client and is skipped when the
first demo user already exists, so calling it on every startup is safe.
"""

from __future__ import annotations

import logging

from skillswap.db import DbClient
from skillswap.security import hash_password
from skillswap.types import ExchangeStatus, SkillType

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {
        "username": "michaelchen",
        "email": "michael@example.com",
        "full_name": "Michael Chen",
        "avatar": "https://images.unsplash.com/photo-1506794778202-cad84cf45f1d?auto=format&fit=facearea&facepad=2&w=256&h=256&q=80",
        "bio": "Frontend developer specializing in React and modern JavaScript frameworks.",
    },
    {
        "username": "sarahkim",
        "email": "sarah@example.com",
        "full_name": "Sarah Kim",
        "avatar": "https://images.unsplash.com/photo-1494790108377-be9c29b29330?auto=format&fit=facearea&facepad=2&w=256&h=256&q=80",
        "bio": "UI/UX designer with 5 years of experience in creating user-centered digital products.",
    },
    {
        "username": "davidwilson",
        "email": "david@example.com",
        "full_name": "David Wilson",
        "avatar": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?auto=format&fit=facearea&facepad=2&w=256&h=256&q=80",
        "bio": "DevOps engineer passionate about automation and cloud infrastructure.",
    },
    {
        "username": "priyasharma",
        "email": "priya@example.com",
        "full_name": "Priya Sharma",
        "avatar": "https://images.unsplash.com/photo-1573496359142-b8d87734a5a2?auto=format&fit=facearea&facepad=2&w=256&h=256&q=80",
        "bio": "Data scientist with expertise in machine learning and predictive analytics.",
    },
]

# (owner username, title, description, type, category, tags)
DEMO_SKILLS = [
    (
        "michaelchen",
        "React Development",
        "I can help with React component architecture, hooks implementation, and state management solutions.",
        SkillType.OFFERING,
        "development",
        ["React", "JavaScript", "Redux"],
    ),
    (
        "michaelchen",
        "UI/UX Design",
        "Looking to learn about user experience design principles and wireframing techniques.",
        SkillType.SEEKING,
        "design",
        ["UI/UX Design"],
    ),
    (
        "sarahkim",
        "UI/UX Design",
        "I specialize in creating user-centered designs, wireframes, and interactive prototypes for web and mobile applications.",
        SkillType.OFFERING,
        "design",
        ["Figma", "Wireframing", "Prototyping"],
    ),
    (
        "sarahkim",
        "Front-end Development",
        "Interested in learning modern frontend development frameworks and best practices.",
        SkillType.SEEKING,
        "development",
        ["Front-end Development"],
    ),
    (
        "davidwilson",
        "DevOps & CI/CD",
        "I can teach how to set up continuous integration pipelines, container orchestration, and cloud infrastructure.",
        SkillType.OFFERING,
        "devops",
        ["Docker", "Kubernetes", "AWS"],
    ),
    (
        "davidwilson",
        "Python & Data Science",
        "Would like to learn Python for data analysis and basic machine learning concepts.",
        SkillType.SEEKING,
        "data science",
        ["Python", "Data Science"],
    ),
    (
        "priyasharma",
        "Data Science",
        "I can provide guidance on data analysis, machine learning models, and data visualization techniques.",
        SkillType.OFFERING,
        "data science",
        ["Python", "TensorFlow", "Pandas"],
    ),
    (
        "priyasharma",
        "Mobile Development",
        "Interested in learning React Native or Flutter for cross-platform mobile app development.",
        SkillType.SEEKING,
        "development",
        ["Mobile Development"],
    ),
]

# (initiator, responder, initiator skill index, responder skill index, status)
DEMO_EXCHANGES = [
    ("michaelchen", "sarahkim", 0, 2, ExchangeStatus.ACCEPTED),
    ("davidwilson", "priyasharma", 4, 6, ExchangeStatus.PENDING),
]

# (exchange index, sender username, content)
DEMO_MESSAGES = [
    (
        0,
        "michaelchen",
        "Hi Sarah, I'd love to learn about UI/UX design from you. When would you be available for a session?",
    ),
    (
        0,
        "sarahkim",
        "Hi Michael! I'm available this weekend. We could do a video call on Saturday afternoon if that works for you?",
    ),
    (
        0,
        "michaelchen",
        "Saturday afternoon works perfectly for me. Looking forward to it!",
    ),
]


def seed_demo_data(db: DbClient) -> bool:
    """Insert the demo dataset. Returns False when it is already present."""
    if db.get_user_by_username(DEMO_USERS[0]["username"]):
        logger.info("Demo data already present; skipping seed")
        return False

    user_ids: dict[str, int] = {}
    for user in DEMO_USERS:
        record = db.create_user(password=hash_password(DEMO_PASSWORD), **user)
        user_ids[record.username] = record.id

    skill_ids: list[int] = []
    for owner, title, description, skill_type, category, tags in DEMO_SKILLS:
        skill = db.create_skill(
            user_id=user_ids[owner],
            title=title,
            description=description,
            skill_type=skill_type,
            category=category,
            tags=tags,
        )
        skill_ids.append(skill.id)

    exchange_ids: list[int] = []
    for initiator, responder, offered, wanted, status in DEMO_EXCHANGES:
        exchange = db.create_exchange(
            initiator_id=user_ids[initiator],
            responder_id=user_ids[responder],
            initiator_skill_id=skill_ids[offered],
            responder_skill_id=skill_ids[wanted],
            status=status,
        )
        exchange_ids.append(exchange.id)

    for exchange_index, sender, content in DEMO_MESSAGES:
        db.create_message(
            exchange_id=exchange_ids[exchange_index],
            sender_id=user_ids[sender],
            content=content,
        )

    logger.info(
        "Seeded %d users, %d skills, %d exchanges, %d messages",
        len(user_ids),
        len(skill_ids),
        len(exchange_ids),
        len(DEMO_MESSAGES),
    )
    return True
