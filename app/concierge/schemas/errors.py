from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | None = None
    trace_id: str | None = None


class ApiValidationErrorItem(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None
    ctx: dict | None = None


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails | dict | None = None


STANDARD_ERROR_RESPONSES = {
    401: {"model": ApiErrorResponse, "description": "Missing or invalid credentials"},
    404: {"model": ApiErrorResponse, "description": "Resource not found"},
    409: {"model": ApiErrorResponse, "description": "Status conflict or allocation exhausted"},
    422: {"model": ApiValidationErrorResponse, "description": "Validation error"},
}
