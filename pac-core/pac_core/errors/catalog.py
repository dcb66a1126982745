"""
Error Catalog
=============
Response-code catalog for the PAC. Entries are business facts, kept as data
so new remote codes can be added from a JSON file without code changes.

File format (``PAC_ERROR_CATALOG_PATH``)::

    {
        "ERR_011": {
            "category": "VALIDATION",
            "severity": "HIGH",
            "retryable": false,
            "requires_manual_intervention": false,
            "suggested_action": "Fix the receiver address and resubmit."
        }
    }
"""

import json
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from .models import ErrorCategory, ErrorSeverity

logger = structlog.get_logger(__name__)


class CatalogEntry(BaseModel):
    """Handling policy for one response code."""
    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    severity: ErrorSeverity
    retryable: bool
    requires_manual_intervention: bool
    suggested_action: str


DEFAULT_ENTRIES: Dict[str, Dict[str, object]] = {
    # Authentication
    "ERR_001": {
        "category": "AUTHENTICATION",
        "severity": "CRITICAL",
        "retryable": False,
        "requires_manual_intervention": True,
        "suggested_action": "Check the PAC credentials in the tenant settings; the token is invalid or expired.",
    },
    "ERR_003": {
        "category": "AUTHENTICATION",
        "severity": "CRITICAL",
        "retryable": False,
        "requires_manual_intervention": True,
        "suggested_action": "The issuer tax id does not match the token. Check the organization configuration.",
    },
    "ERR_008": {
        "category": "AUTHENTICATION",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": True,
        "suggested_action": "Billing point not authorized. Ask the PAC to enable it.",
    },
    # Validation
    "ERR_002": {
        "category": "VALIDATION",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Malformed document. Check its structure against the tax authority schema.",
    },
    "ERR_005": {
        "category": "VALIDATION",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Totals do not add up. Recompute subtotal, tax and total.",
    },
    "ERR_006": {
        "category": "VALIDATION",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Invalid tax rate code. Use 00 (0%), 01 (7%), 02 (10%) or 03 (15%).",
    },
    "ERR_007": {
        "category": "VALIDATION",
        "severity": "MEDIUM",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Issue date out of range. It must be recent and not in the future.",
    },
    "ERR_009": {
        "category": "VALIDATION",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Invalid receiver tax id. Check the format and check digit.",
    },
    # Business rules
    "ERR_004": {
        "category": "BUSINESS_RULE",
        "severity": "CRITICAL",
        "retryable": False,
        "requires_manual_intervention": True,
        "suggested_action": "Folio quota exhausted. Purchase more folios from the PAC.",
    },
    "ERR_010": {
        "category": "BUSINESS_RULE",
        "severity": "HIGH",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Duplicate document. Make sure the document number was not used before.",
    },
    # Network / system
    "ETIMEDOUT": {
        "category": "NETWORK",
        "severity": "MEDIUM",
        "retryable": True,
        "requires_manual_intervention": False,
        "suggested_action": "Connection timed out. Retrying automatically with exponential backoff.",
    },
    "ECONNREFUSED": {
        "category": "NETWORK",
        "severity": "HIGH",
        "retryable": True,
        "requires_manual_intervention": False,
        "suggested_action": "Connection refused. Check network connectivity and PAC service status.",
    },
    "ENOTFOUND": {
        "category": "NETWORK",
        "severity": "HIGH",
        "retryable": True,
        "requires_manual_intervention": False,
        "suggested_action": "Host name not resolved. Check DNS and the configured PAC URLs.",
    },
    "SERVER_ERROR": {
        "category": "SYSTEM",
        "severity": "HIGH",
        "retryable": True,
        "requires_manual_intervention": False,
        "suggested_action": "The PAC returned a server error. Retrying automatically.",
    },
    "CIRCUIT_OPEN": {
        "category": "SYSTEM",
        "severity": "MEDIUM",
        "retryable": False,
        "requires_manual_intervention": False,
        "suggested_action": "Service temporarily suspended after repeated failures. Retry later.",
    },
}


class ErrorCatalog:
    """Code -> CatalogEntry lookup table."""

    def __init__(self, entries: Optional[Mapping[str, Union[CatalogEntry, Mapping]]] = None):
        self._entries: Dict[str, CatalogEntry] = {}
        if entries:
            self.extend(entries)

    @classmethod
    def default(cls) -> "ErrorCatalog":
        return cls(DEFAULT_ENTRIES)

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional["ErrorCatalog"] = None) -> "ErrorCatalog":
        """Load entries from a JSON file, layered over ``base`` (default catalog if omitted)."""
        catalog = cls(dict(base if base is not None else cls.default()))
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        catalog.extend(raw)
        logger.info("error_catalog_loaded", path=str(path), entries=len(raw))
        return catalog

    def extend(self, entries: Mapping[str, Union[CatalogEntry, Mapping]]) -> None:
        for code, entry in entries.items():
            self.register(code, entry)

    def register(self, code: str, entry: Union[CatalogEntry, Mapping]) -> None:
        if not isinstance(entry, CatalogEntry):
            entry = CatalogEntry.model_validate(entry)
        self._entries[code] = entry

    def get(self, code: Optional[str]) -> Optional[CatalogEntry]:
        if code is None:
            return None
        return self._entries.get(code)

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, code: str) -> CatalogEntry:
        return self._entries[code]

    def keys(self):
        return self._entries.keys()
