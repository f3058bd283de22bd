from app.core.errors import NotFoundError, ValidationError


class PromoError(ValidationError):
    code = "E_PROMO"


class PromoCodeRequiredError(PromoError):
    code = "E_PROMO_CODE_REQUIRED"


class PromoNotFoundError(NotFoundError):
    code = "E_PROMO_NOT_FOUND"


class PromoInactiveError(PromoError):
    code = "E_PROMO_INACTIVE"


class PromoExpiredError(PromoError):
    code = "E_PROMO_EXPIRED"


class PromoLimitReachedError(PromoError):
    code = "E_PROMO_LIMIT_REACHED"
