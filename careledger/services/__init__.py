"""
Services Layer for the Claims and Settlement Core.

Exports the claim lifecycle, settlement, wallet ledger, enrollment,
sponsorship and plan services.
"""

from careledger.services.claim_state_machine import (
    ClaimStateMachine,
    TransitionEvent,
    get_claim_state_machine,
)
from careledger.services.claims_service import ClaimsService
from careledger.services.enrollment_service import EnrollmentService
from careledger.services.plan_service import PlanService
from careledger.services.settlement import SettlementResult, SettlementService
from careledger.services.sponsorship_service import SponsorshipService
from careledger.services.wallet_ledger import LedgerEntry, WalletBalances, WalletLedger

__all__ = [
    # State machine
    "ClaimStateMachine",
    "TransitionEvent",
    "get_claim_state_machine",
    # Claims
    "ClaimsService",
    "SettlementService",
    "SettlementResult",
    # Wallets
    "WalletLedger",
    "WalletBalances",
    "LedgerEntry",
    # Enrollment / sponsorship / plans
    "EnrollmentService",
    "SponsorshipService",
    "PlanService",
]
