"""
Exception hierarchy.

Every business failure is a named subclass of OptivusError carrying a stable
``code`` so callers can branch on it programmatically. Categories follow
how the caller should react:

- ValidationError: bad input shape; fix the request.
- PreconditionError: a business rule guard failed; nothing changed.
- ConflictError: the operation already happened; safe to re-check.
- NotFoundError: the referenced record does not exist.
"""


class OptivusError(Exception):
    """Base class for all engine errors."""

    code = "OPTIVUS_ERROR"
    default_message = "Operation failed"

    def __init__(self, message: str | None = None, **context: object) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        """Serializable error payload."""
        return {"code": self.code, "message": self.message, **self.context}


class ValidationError(OptivusError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class PreconditionError(OptivusError):
    code = "PRECONDITION_FAILED"
    default_message = "Operation not permitted"


class ConflictError(OptivusError):
    code = "CONFLICT"
    default_message = "Operation conflicts with current state"


class NotFoundError(OptivusError):
    code = "NOT_FOUND"
    default_message = "Record not found"


# Validation errors

class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be a positive value with at most two decimal places"


class InvalidEmail(ValidationError):
    code = "INVALID_EMAIL"
    default_message = "Please enter a valid e-mail address"


class InvalidUsername(ValidationError):
    code = "INVALID_USERNAME"
    default_message = "Username must be 3-20 characters: letters, numbers and underscores"


class WeakPassword(ValidationError):
    code = "WEAK_PASSWORD"
    default_message = "Password must be at least 8 characters long"


class InvalidPinFormat(ValidationError):
    code = "INVALID_PIN_FORMAT"
    default_message = "PIN must be 4 to 6 digits"


class MissingDestination(ValidationError):
    code = "MISSING_DESTINATION"
    default_message = "Network and address are required for crypto withdrawals"


class MissingDocument(ValidationError):
    code = "MISSING_DOCUMENT"
    default_message = "An identity document is required"


class InvalidFeeAmount(ValidationError):
    code = "INVALID_FEE_AMOUNT"
    default_message = "Payment amount does not match the entry fee"


class InvalidWithdrawalMethod(ValidationError):
    code = "INVALID_WITHDRAWAL_METHOD"
    default_message = "Withdrawal method must be crypto, stripe or paypal"


class InvalidStatus(ValidationError):
    code = "INVALID_STATUS"
    default_message = "Unsupported status value"


# Precondition errors

class InvalidReferralCode(PreconditionError):
    code = "INVALID_REFERRAL_CODE"
    default_message = "Referral code does not belong to an active account"


class ReferralCycle(PreconditionError):
    code = "REFERRAL_CYCLE"
    default_message = "Sponsorship would create a referral cycle"


class InvalidCredentials(PreconditionError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class TwoFactorRequired(PreconditionError):
    code = "TWO_FACTOR_REQUIRED"
    default_message = "Two-factor token required"


class InvalidTwoFactorToken(PreconditionError):
    code = "INVALID_2FA_TOKEN"
    default_message = "Invalid 2FA token"


class TwoFactorNotPending(PreconditionError):
    code = "TWO_FACTOR_NOT_PENDING"
    default_message = "Two-factor enrolment has not been started"


class InvalidVerificationCode(PreconditionError):
    code = "INVALID_VERIFICATION_CODE"
    default_message = "Invalid or expired verification code"


class AccountNotActive(PreconditionError):
    code = "ACCOUNT_NOT_ACTIVE"
    default_message = "Account is not active"


class AccountFrozen(PreconditionError):
    code = "ACCOUNT_FROZEN"
    default_message = "Account is frozen"


class WithdrawalsPaused(PreconditionError):
    code = "WITHDRAWALS_PAUSED"
    default_message = "Withdrawals are currently paused"


class NoWithdrawalPin(PreconditionError):
    code = "NO_WITHDRAWAL_PIN"
    default_message = "Set a withdrawal PIN before requesting a withdrawal"


class InvalidPin(PreconditionError):
    code = "INVALID_PIN"
    default_message = "Invalid PIN"


class PinLocked(PreconditionError):
    code = "PIN_LOCKED"
    default_message = "Too many failed PIN attempts; try again later"


class InsufficientBalance(PreconditionError):
    code = "INSUFFICIENT_BALANCE"
    default_message = "Withdrawal amount exceeds available balance"


class CryptoLimitExceeded(PreconditionError):
    code = "CRYPTO_LIMIT_EXCEEDED"
    default_message = "Crypto withdrawal exceeds the limit for unverified accounts"


class FiatRequiresKyc(PreconditionError):
    code = "FIAT_REQUIRES_KYC"
    default_message = "KYC verification is required for fiat withdrawals"


class PayoutMethodRequired(PreconditionError):
    code = "PAYOUT_METHOD_REQUIRED"
    default_message = "Connect a payout method first"


class NegativeBalance(PreconditionError):
    code = "NEGATIVE_BALANCE"
    default_message = "Balance cannot be negative"


# Conflict errors

class SponsorAlreadySet(ConflictError):
    code = "SPONSOR_ALREADY_SET"
    default_message = "Sponsor has already been set for this account"


class DuplicatePaymentEvent(ConflictError):
    code = "DUPLICATE_PAYMENT_EVENT"
    default_message = "Payment event has already been processed"


class AlreadyResolved(ConflictError):
    code = "ALREADY_RESOLVED"
    default_message = "Withdrawal request has already been resolved"


class AlreadyActivated(ConflictError):
    code = "ALREADY_ACTIVATED"
    default_message = "Account is already activated"


class UsernameTaken(ConflictError):
    code = "USERNAME_TAKEN"
    default_message = "Username is already taken"


class EmailTaken(ConflictError):
    code = "EMAIL_TAKEN"
    default_message = "An account with this e-mail already exists"


# Not found errors

class AccountNotFound(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"
    default_message = "Account not found"


class WithdrawalNotFound(NotFoundError):
    code = "WITHDRAWAL_NOT_FOUND"
    default_message = "Withdrawal request not found"


class RequestNotFound(NotFoundError):
    code = "REQUEST_NOT_FOUND"
    default_message = "KYC request not found"


class PaymentEventNotFound(NotFoundError):
    code = "PAYMENT_EVENT_NOT_FOUND"
    default_message = "Payment event not found"


class NotAuthorized(PreconditionError):
    code = "NOT_AUTHORIZED"
    default_message = "Admin privileges required"


class KycAlreadyVerified(ConflictError):
    code = "KYC_ALREADY_VERIFIED"
    default_message = "Identity is already verified"


class EmailAlreadyVerified(ConflictError):
    code = "EMAIL_ALREADY_VERIFIED"
    default_message = "E-mail address is already verified"
