"""
Request Parameter Errors

Scenario problems are data: they come back as validation_issues inside a
normal 200 calculation result. These helpers cover the other case, a path
or query parameter the API cannot act on at all, reported as a 422 with a
structured body:

{
    "error": "missing_parameter" | "invalid_parameter",
    "parameter": "financial_year",
    "message": "financial_year must be one of: FY2024-25, FY2025-26",
    "received_value": "FY2019-20"
}
"""

from typing import Any, Iterable, NoReturn, Optional

from fastapi import HTTPException, status

MAX_ECHOED_VALUE_LENGTH = 100


def parameter_error(kind: str, parameter: str, message: str, value: Optional[Any] = None) -> dict:
    detail = {"error": kind, "parameter": parameter, "message": message}
    if value is not None:
        detail["received_value"] = str(value)[:MAX_ECHOED_VALUE_LENGTH]
    return detail


def raise_parameter_error(
    kind: str,
    parameter: str,
    message: str,
    value: Optional[Any] = None,
) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=parameter_error(kind, parameter, message, value),
    )


def validate_choice(value: Optional[str], parameter: str, choices: Iterable[str]) -> str:
    """
    Return value when it is one of choices.

    Raises:
        HTTPException: 422 missing_parameter or invalid_parameter
    """
    if not value:
        raise_parameter_error("missing_parameter", parameter, f"{parameter} is required")

    allowed = list(choices)
    if value not in allowed:
        raise_parameter_error(
            "invalid_parameter",
            parameter,
            f"{parameter} must be one of: {', '.join(allowed)}",
            value,
        )
    return value
