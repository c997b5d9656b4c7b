"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy and marshmallow as module-level objects so they can be
imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

    from campledger.app.extensions import db, ma

The credential gate is not a module-level singleton: it is built from the
app's config in create_app() and stored in app.extensions["credential_gate"],
so each test app carries its own fixture secrets.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Marshmallow instance, available for model serialization helpers.
# Import as:  from campledger.app.extensions import ma
#
# IMPORTANT: schema inheritance rule:
#   All validation Schema classes (in app/schemas/) must inherit from
#   marshmallow.Schema directly, NOT from ma.Schema.
#
#   Reason: ma.Schema requires an active Flask application context. Unit tests
#   in tests/unit/ run without a Flask app.
#
#   Correct:
#       from marshmallow import Schema, fields
#       class ExpenseSchema(Schema): ...
#
#   Incorrect:
#       class ExpenseSchema(ma.Schema): ...   # breaks unit tests
ma = Marshmallow()
