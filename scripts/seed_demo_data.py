#!/usr/bin/env python3
"""
DocFlow — Demo Data Seed Script.

Two projects (Xingu 500kV substation, North transmission line), one user
per role, the default catalogs and a few documents with real histories.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --reset      # drop and recreate all tables first
"""

import argparse
import sys

sys.path.insert(0, ".")

from docflow import create_app
from docflow.models import db
from docflow.services.demo_data import DEMO_USERS, seed_demo_data


def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--reset", action="store_true", help="drop all tables before seeding")
    args = parser.parse_args()

    app = create_app()
    print(f"🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        if args.reset:
            db.drop_all()
            print("   Tables dropped")
        db.create_all()
        counts = seed_demo_data()

    for entity, count in counts.items():
        print(f"    {entity:.<30} {count}")
    if not any(counts.values()):
        print("\n   Demo data already present (use --reset to start over)")
        return
    print("\n   Log in with any of:")
    for email, name, roles, _ in DEMO_USERS:
        print(f"     {email:<26} {name} ({', '.join(r.value for r in roles)})")


if __name__ == "__main__":
    main()
