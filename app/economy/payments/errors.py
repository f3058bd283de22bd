from app.core.errors import ConflictError, ValidationError


class PaymentError(ValidationError):
    code = "E_PAYMENT"


class InvalidSignatureError(PaymentError):
    code = "E_INVALID_SIGNATURE"


class PaymentRecordMissingError(PaymentError):
    code = "E_PAYMENT_RECORD_MISSING"


class PaymentStateError(ConflictError):
    code = "E_PAYMENT_STATE"


class PaymentClaimMismatchError(PaymentError):
    code = "E_PAYMENT_CLAIM_MISMATCH"
