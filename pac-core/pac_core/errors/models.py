"""
Error Models
============
Categories, severities and the classified error value type.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict


class ErrorCategory(str, Enum):
    """What kind of failure the PAC reported."""
    AUTHENTICATION = "AUTHENTICATION"  # Credentials/authorization, fix by hand
    VALIDATION = "VALIDATION"          # Bad request data, resubmit as new
    BUSINESS_RULE = "BUSINESS_RULE"    # Quota, duplicates, fiscal rules
    SYSTEM = "SYSTEM"                  # Remote infrastructure
    NETWORK = "NETWORK"                # Transport
    UNKNOWN = "UNKNOWN"


class ErrorSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class ClassifiedError:
    """A failure mapped onto the catalog, with its handling policy."""
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    retryable: bool
    requires_manual_intervention: bool
    suggested_action: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["category"] = self.category.value
        d["severity"] = self.severity.value
        return d
