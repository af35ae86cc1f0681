"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db init       # first time only (creates migrations/)
    flask db migrate -m "description"
    flask db upgrade
    flask seed-demo     # demo projects, users and documents
"""

from docflow import create_app

app = create_app()
