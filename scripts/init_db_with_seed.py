import sys
import os
import uuid
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import mysql.connector
from app.core.config import settings
from app.core.prompts import default_system_prompt
from app.core.security import get_password_hash
from app.db.models import (
    Folder,
    Group,
    KnowledgeMode,
    Prompt,
    PromptType,
    SETTINGS_SINGLETON_ID,
    SystemSettings,
    User,
    UserRole,
)
from app.db.database import Base, engine, SessionLocal
from app.schemas.settings import SystemSettingsSchema
from app.services.prompt_service import DEFAULT_SYSTEM_PROMPT_NAME

def create_database():
    """Create the database if it doesn't exist"""
    if settings.DATABASE_URL_OVERRIDE:
        print("DATABASE_URL is set, skipping database creation")
        return
    try:
        # Connect to MySQL server without database
        conn = mysql.connector.connect(
            host=settings.MYSQL_HOST,
            port=settings.MYSQL_PORT,
            user=settings.MYSQL_USER,
            password=settings.MYSQL_PASSWORD
        )
        cursor = conn.cursor()

        # Create database if it doesn't exist
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS {settings.MYSQL_DATABASE} CHARACTER SET utf8mb4")
        print(f"Database '{settings.MYSQL_DATABASE}' created successfully")

        cursor.close()
        conn.close()

    except Exception as e:
        print(f"Error creating database: {e}")
        sys.exit(1)

def create_tables():
    """Create all tables"""
    try:
        Base.metadata.create_all(bind=engine)
        print("All tables created successfully")
    except Exception as e:
        print(f"Error creating tables: {e}")
        sys.exit(1)

def add_seed_data():
    """Add seed data to the database"""
    db = SessionLocal()
    try:
        if db.query(User).filter(User.username == "admin").first():
            print("Seed data already present, skipping")
            return

        admin = User(
            id=str(uuid.uuid4()),
            username="admin",
            email="admin@example.com",
            hashed_password=get_password_hash("admin12345"),
            first_name="Admin",
            last_name="User",
            role=UserRole.SUPER_ADMIN.value,
        )
        demo_user = User(
            id=str(uuid.uuid4()),
            username="demo",
            email="demo@example.com",
            hashed_password=get_password_hash("demo12345"),
            first_name="Demo",
            last_name="User",
            role=UserRole.USER.value,
        )
        db.add_all([admin, demo_user])

        # Folders
        company = Folder(
            id=str(uuid.uuid4()),
            name="Company",
            path="/company",
            description="General company information",
            knowledge_mode=KnowledgeMode.HYBRID.value,
        )
        handbook = Folder(
            id=str(uuid.uuid4()),
            name="Handbook",
            path="/company/handbook",
            description="Employee handbook",
            parent_id=company.id,
            knowledge_mode=KnowledgeMode.HYBRID.value,
        )
        policies = Folder(
            id=str(uuid.uuid4()),
            name="HR Policies",
            path="/hr/policies",
            description="Binding HR policies, answered from documents only",
            knowledge_mode=KnowledgeMode.RAG_ONLY.value,
            priority=10,
        )
        db.add_all([company, handbook, policies])

        # Group with folder access
        staff = Group(id=str(uuid.uuid4()), name="Staff", description="All employees")
        staff.folders = [company, policies]
        staff.members = [demo_user]
        db.add(staff)
        admin.folders = [company, policies]

        db.add(SystemSettings(
            id=SETTINGS_SINGLETON_ID,
            settings=SystemSettingsSchema().model_dump(mode="json"),
            updated_by=admin.id,
        ))

        defaults = SystemSettingsSchema().general
        db.add(Prompt(
            id=str(uuid.uuid4()),
            name=DEFAULT_SYSTEM_PROMPT_NAME,
            type=PromptType.SYSTEM.value,
            content=default_system_prompt(defaults.system_name, defaults.default_language),
            version=1,
            is_active=True,
        ))

        db.commit()
        print("Seed data added successfully")

    except Exception as e:
        print(f"Error adding seed data: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()

def init_database():
    """Initialize database with tables and seed data"""
    print("Starting database initialization...")
    create_database()
    create_tables()
    add_seed_data()
    print("Database initialization completed successfully")

if __name__ == "__main__":
    init_database()
