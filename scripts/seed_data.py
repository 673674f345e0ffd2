"""
Seed initial data: default system settings and ministries (sampana).
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from parish.db.base import SessionLocal
from parish.models.member import Ministry
from parish.services.settings import SettingsRepository, SystemConfig


def seed_settings(db):
    """Store the default configuration for keys that were never saved."""
    print("Seeding system settings...")
    repo = SettingsRepository(db)
    stored = repo.get_config()
    if stored.last_saved is None:
        repo.save_config(SystemConfig())
    print("System settings seeded")


def seed_ministries(db):
    """Seed default ministries."""
    print("Seeding ministries...")
    ministries = [
        {"name": "Sampana Lehilahy Kristiana", "description": "SLK"},
        {"name": "Sampana Vehivavy Kristiana", "description": "SVK"},
        {"name": "Sampana Tanora Kristiana", "description": "STK"},
        {"name": "Sekoly Alahady", "description": "Sekoly Alahady sy Fanabeazana"},
        {"name": "Dorkasy", "description": "Asa sosialy"},
        {"name": "Antoko Mpihira", "description": "Chorale"},
    ]

    for ministry_data in ministries:
        existing = db.query(Ministry).filter(Ministry.name == ministry_data["name"]).first()
        if not existing:
            db.add(Ministry(**ministry_data))

    db.commit()
    print("Ministries seeded")


def main():
    db = SessionLocal()
    try:
        seed_settings(db)
        seed_ministries(db)
        print("✅ Seed data complete")
    finally:
        db.close()


if __name__ == "__main__":
    main()
