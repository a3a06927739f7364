"""
Core Enumerations for the Claims and Settlement Core.
Source: HMO claim, enrollment, wallet and transaction document schemas
Verified: 2026-10-18
"""

from enum import Enum


# =============================================================================
# Actors
# =============================================================================


class UserRole(str, Enum):
    """Roles recognised by the core. Identity is asserted upstream."""

    PATIENT = "patient"
    PROVIDER = "provider"
    VENDOR = "vendor"
    SPONSOR = "sponsor"
    SUPER_ADMIN = "super_admin"


class ClaimantType(str, Enum):
    """Who submitted the claim and receives the settlement."""

    PROVIDER = "provider"
    VENDOR = "vendor"
    PATIENT = "patient"


# =============================================================================
# Plan Enums
# =============================================================================


class PlanStatus(str, Enum):
    """Lifecycle status of an HMO plan."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    DISCONTINUED = "discontinued"


class PlanCategory(str, Enum):
    """Plan tiers."""

    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"
    PLATINUM = "platinum"


class ServiceType(str, Enum):
    """Service types a plan can cover and a claim can bill."""

    OUTPATIENT = "outpatient"
    INPATIENT = "inpatient"
    EMERGENCY = "emergency"
    SURGERY = "surgery"
    MATERNITY = "maternity"
    PRESCRIPTION = "prescription"
    DIAGNOSTIC = "diagnostic"
    DENTAL = "dental"
    VISION = "vision"
    MENTAL_HEALTH = "mental_health"
    PREVENTIVE = "preventive"
    SPECIALIST_CONSULTATION = "specialist_consultation"
    OTHER = "other"


class LimitPeriod(str, Enum):
    """Window a coverage limit applies to."""

    VISIT = "visit"
    PROCEDURE = "procedure"
    SESSION = "session"
    TEST = "test"
    PRESCRIPTION = "prescription"
    PREGNANCY = "pregnancy"
    MONTH = "month"
    YEAR = "year"
    LIFETIME = "lifetime"


# Limits that reset with every billed event
PER_EVENT_PERIODS = frozenset(
    {
        LimitPeriod.VISIT,
        LimitPeriod.PROCEDURE,
        LimitPeriod.SESSION,
        LimitPeriod.TEST,
        LimitPeriod.PRESCRIPTION,
        LimitPeriod.PREGNANCY,
    }
)


# =============================================================================
# Enrollment Enums
# =============================================================================


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    GRACE_PERIOD = "grace_period"


class EnrollmentType(str, Enum):
    """Who an enrollment covers."""

    INDIVIDUAL = "individual"
    FAMILY = "family"
    CORPORATE = "corporate"
    GROUP = "group"


class PaymentPlan(str, Enum):
    """Premium billing cadence."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class PremiumPaymentMethod(str, Enum):
    """How a member pays premiums."""

    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    WALLET = "wallet"
    EMPLOYER = "employer"


class RefundStatus(str, Enum):
    """Status of a cancellation refund."""

    PENDING = "pending"
    PROCESSED = "processed"
    DENIED = "denied"
    MANUAL_REVIEW = "manual_review"


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Claim adjudication status."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PARTIALLY_APPROVED = "partially_approved"
    APPEALED = "appealed"
    PAID = "paid"
    CANCELLED = "cancelled"


class AppealStatus(str, Enum):
    """Status of a claim appeal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClaimPaymentMethod(str, Enum):
    """Channel used to settle a claim."""

    WALLET = "wallet"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CHECK = "check"


# =============================================================================
# Wallet / Ledger Enums
# =============================================================================


class WalletType(str, Enum):
    """Balance buckets held per owner."""

    PERSONAL = "personal"
    SPONSORED = "sponsored"


class WalletStatus(str, Enum):
    """Wallet lifecycle status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class TransactionType(str, Enum):
    """Direction of a ledger entry relative to its wallet."""

    CREDIT = "credit"
    DEBIT = "debit"


class TransactionCategory(str, Enum):
    """Business reason behind a ledger entry."""

    CLAIM_PAYMENT = "claim_payment"
    DEPOSIT = "deposit"
    PREMIUM_PAYMENT = "premium_payment"
    SPONSORSHIP_FUNDING = "sponsorship_funding"
    SPONSORSHIP_USAGE = "sponsorship_usage"
    REVERSAL = "reversal"


class TransactionStatus(str, Enum):
    """Ledger entry status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REVERSED = "reversed"


# =============================================================================
# Sponsorship Enums
# =============================================================================


class SponsorshipStatus(str, Enum):
    """Sponsorship lifecycle status."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
