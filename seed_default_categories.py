"""
Seed system (default) categories

Usage:
    DATABASE_URL=postgresql://... python seed_default_categories.py
"""
from app.application.categories import EnsureDefaultCategoriesUseCase
from app.infrastructure.db.session import get_db


db = next(get_db())
try:
    created = EnsureDefaultCategoriesUseCase(db).execute()
    if created:
        print(f"Created {created} default categories")
    else:
        print("Default categories already exist")
finally:
    db.close()
