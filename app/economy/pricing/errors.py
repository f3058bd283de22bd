from app.core.errors import NotFoundError, ValidationError


class PricingError(ValidationError):
    code = "E_PRICING_INVALID"


class InvalidPurchaseTypeError(ValidationError):
    code = "E_INVALID_PURCHASE_TYPE"


class InvalidItemError(NotFoundError):
    code = "E_INVALID_ITEM"
