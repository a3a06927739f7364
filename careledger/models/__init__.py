"""
SQLAlchemy Models for the claims and settlement core.

This module exports all database models for the application.
"""

from careledger.models.base import Base, TimeStampedModel, UUIDModel
from careledger.models.plan import Plan
from careledger.models.enrollment import Enrollment, EnrollmentStatusHistory
from careledger.models.claim import Claim, ClaimStatusHistory
from careledger.models.wallet import Transaction, Wallet
from careledger.models.sponsorship import Sponsorship

__all__ = [
    # Base classes
    "Base",
    "TimeStampedModel",
    "UUIDModel",
    # Plan catalog
    "Plan",
    # Enrollment models
    "Enrollment",
    "EnrollmentStatusHistory",
    # Claim models
    "Claim",
    "ClaimStatusHistory",
    # Ledger models
    "Wallet",
    "Transaction",
    # Sponsorship
    "Sponsorship",
]
