"""
User roles enumeration.

Defines the role claims accepted by the ledger service.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Runs backfills and posts reversals
        ACCOUNTANT: Reads ledger entries, logs and reports
        VIEWER: Reads the chart of accounts only
    """
    ADMIN = "ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    VIEWER = "VIEWER"
