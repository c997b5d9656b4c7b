"""
Model registry.

Importing any model module pulls in all of them, so SQLAlchemy can resolve
the string-based relationship targets ("Payment", "BudgetExpense") even when
only one model is imported, as in the unit tests.
"""

from campledger.app.models import expense, member, payment  # noqa: F401
