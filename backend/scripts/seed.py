"""Seed script to create initial data for development/demo."""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from surveyhub.database import SessionLocal, engine, Base
from surveyhub.models.user import User
from surveyhub.models.topic import Topic
from surveyhub.models.template import Template
from surveyhub.schemas.user import Principal
from surveyhub.services.auth import AuthService
from surveyhub.services.template import TemplateService

USERS = [
    {"email": "admin@example.com", "name": "Admin User", "is_admin": True},
    {"email": "alice@example.com", "name": "Alice Author", "is_admin": False},
    {"email": "bob@example.com", "name": "Bob Filler", "is_admin": False},
]

TOPICS = ["Education", "Quiz", "Other"]

# Templates owned by alice@example.com
TEMPLATES = [
    {
        "title": "Course Feedback",
        "description": "Tell us how the course went.",
        "topic": "Education",
        "is_public": True,
        "tags": ["feedback", "course"],
        "questions": [
            {"type": "string", "title": "Your name"},
            {"type": "linear_scale", "title": "Overall rating", "min": 1, "max": 5,
             "min_label": "Poor", "max_label": "Great", "is_required": True},
            {"type": "dropdown", "title": "Favourite module", "options": ["Intro", "Advanced", "Project"]},
            {"type": "checkbox", "title": "Would recommend"},
            {"type": "text", "title": "Comments"},
        ],
    },
    {
        "title": "Team Quiz",
        "description": "A private quiz for Bob.",
        "topic": "Quiz",
        "is_public": False,
        "tags": ["quiz"],
        "permissions": ["bob@example.com"],
        "questions": [
            {"type": "integer", "title": "2 + 2 = ?", "is_required": True},
            {"type": "select", "title": "Capital of France", "options": ["Paris", "Lyon", "Nice"]},
            {"type": "date", "title": "Today's date"},
        ],
    },
]


def seed_database():
    """Create initial seed data."""
    db = SessionLocal()

    try:
        # Create users
        print("Creating users...")
        users = {}
        for user_config in USERS:
            user = db.query(User).filter(User.email == user_config["email"]).first()
            if not user:
                user = User(**user_config)
                db.add(user)
                print(f"  Created user: {user_config['email']}")
            users[user_config["email"]] = user
        db.commit()

        print("\nCreating topics...")
        topics = {}
        for name in TOPICS:
            topic = db.query(Topic).filter(Topic.name == name).first()
            if not topic:
                topic = Topic(name=name)
                db.add(topic)
                print(f"  Created topic: {name}")
            topics[name] = topic
        db.commit()

        print("\nCreating templates...")
        author = users["alice@example.com"]
        service = TemplateService(db)
        for template_config in TEMPLATES:
            if db.query(Template).filter(Template.title == template_config["title"]).first():
                print(f"  Skipped existing template: {template_config['title']}")
                continue
            payload = {
                "title": template_config["title"],
                "description": template_config["description"],
                "topic_id": topics[template_config["topic"]].id,
                "is_public": template_config["is_public"],
                "tags": template_config["tags"],
                "questions": template_config["questions"],
                "permissions": [users[email].id for email in template_config.get("permissions", [])],
            }
            service.create_template(Principal(id=author.id), payload)
            print(f"  Created template: {template_config['title']}")

        print("\nSeed data created successfully!")
        print("\nBearer tokens for local testing:")
        for email, user in users.items():
            print(f"  {email}: {AuthService.create_access_token(user.id)}")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    # Create tables
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Seed data
    seed_database()
