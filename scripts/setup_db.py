"""
scripts/setup_db.py — Initialize the rubric schema and link users to companies.

Run once before starting the application for the first time:
    python scripts/setup_db.py

Link an identity-provider user to a company (needed before that user can
manage company rubrics):
    python scripts/setup_db.py --link-profile user_2abc --company-id acme
"""

import sys
import os
import argparse

# Ensure the project root is on the path so we can import `app`
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import inspect, text

from app.config import settings
from app.db.models import Base, Profile
from app.db.session import engine, get_session


def create_schema() -> None:
    print("🔌 Connecting to database...")
    print(f"   URL: {settings.database_url[:40]}...")

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    print("✅ Connection successful.")

    print("\n📦 Creating rubric tables if they don't exist...")
    Base.metadata.create_all(bind=engine)

    present = set(inspect(engine).get_table_names())
    for name in Base.metadata.tables:
        mark = "✅" if name in present else "❌"
        print(f"   {mark} {name}")


def link_profile(subject_id: str, company_id: str) -> None:
    with get_session() as db:
        profile = db.get(Profile, subject_id)
        if profile is None:
            db.add(Profile(id=subject_id, company_id=company_id))
            print(f"\n👤 Created profile {subject_id} → company {company_id}")
        else:
            profile.company_id = company_id
            print(f"\n👤 Updated profile {subject_id} → company {company_id}")


def main():
    parser = argparse.ArgumentParser(description="Create the schema and optionally link a profile.")
    parser.add_argument("--link-profile", metavar="SUBJECT_ID", help="Identity-provider user id")
    parser.add_argument("--company-id", help="Company to link the profile to")
    args = parser.parse_args()

    if args.link_profile and not args.company_id:
        parser.error("--company-id is required with --link-profile")

    create_schema()
    if args.link_profile:
        link_profile(args.link_profile, args.company_id)

    print("\n🎉 Database setup complete!")


if __name__ == "__main__":
    main()
