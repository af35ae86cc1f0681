#!/usr/bin/env python3
"""Show DB record counts for all tables."""
import sys
sys.path.insert(0, ".")

from docflow import create_app
from docflow.models import db

TABLES = [
    "projects", "users", "documents", "document_versions", "catalog_entries",
]

app = create_app()
with app.app_context():
    total = 0
    for t in TABLES:
        c = db.session.execute(db.text(f"SELECT COUNT(*) FROM {t}")).scalar()
        total += c
        print(f"    {t:.<30} {c}")
    print(f"    {'TOTAL':.<30} {total}")
