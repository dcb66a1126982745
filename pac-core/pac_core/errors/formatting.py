"""
Error Formatting
================
Log and user-facing renderings of a ClassifiedError.

User messages never expose transport details: transient failures read as
"retrying", a suspended breaker reads as "retry later" without implying the
specific request failed.
"""

from .models import ClassifiedError, ErrorCategory

BREAKER_OPEN_CODE = "CIRCUIT_OPEN"

USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Authentication with the certification provider failed. Please check your configuration.",
    ErrorCategory.NETWORK: "Temporary service error. We are retrying automatically.",
    ErrorCategory.SYSTEM: "Temporary service error. We are retrying automatically.",
    ErrorCategory.UNKNOWN: "An error occurred. Please contact technical support.",
}

BREAKER_OPEN_MESSAGE = (
    "The certification service is temporarily suspended. "
    "Your document was not sent; please retry later."
)


def format_for_log(error: ClassifiedError) -> str:
    return (
        f"[{error.category.value}/{error.severity.value}] {error.code}: {error.message}\n"
        f"Action: {error.suggested_action}"
    )


def format_for_user(error: ClassifiedError) -> str:
    if error.code == BREAKER_OPEN_CODE:
        return BREAKER_OPEN_MESSAGE
    if error.category == ErrorCategory.VALIDATION:
        return f"The document data is invalid: {error.message}. {error.suggested_action}"
    if error.category == ErrorCategory.BUSINESS_RULE:
        return f"The document violates a business rule: {error.message}. {error.suggested_action}"
    return USER_MESSAGES[error.category]
