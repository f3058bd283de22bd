from app.core.errors import ConflictError, NotFoundError, ValidationError


class ExperimentError(ValidationError):
    code = "E_EXPERIMENT"


class InvalidVariantWeightsError(ExperimentError):
    code = "E_INVALID_VARIANT_WEIGHTS"


class InvalidEventTypeError(ExperimentError):
    code = "E_INVALID_EVENT_TYPE"


class ExperimentNotFoundError(NotFoundError):
    code = "E_EXPERIMENT_NOT_FOUND"


class ExperimentExistsError(ConflictError):
    code = "E_EXPERIMENT_EXISTS"
