"""
PAC Remote Models
=================
Request and response shapes exchanged with the certification provider.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

# Response codes the provider uses for an accepted operation
SUCCESS_CODES = frozenset({"00", "01"})


def is_success(code: Optional[str]) -> bool:
    return code in SUCCESS_CODES


class RemoteStatus(str, Enum):
    """Document status as reported by the provider."""
    ACEPTADO = "ACEPTADO"
    RECHAZADO = "RECHAZADO"
    EN_PROCESO = "EN_PROCESO"
    ANULADO = "ANULADO"


class ArtifactKind(str, Enum):
    XML = "XML"
    PDF = "PDF"


class Credentials(BaseModel):
    """Per-tenant provider credentials (already decrypted)."""
    company_token: str
    password: str


class DocumentRef(BaseModel):
    """Identifies a fiscal document at the provider."""
    branch_code: str = "0000"
    document_number: str
    billing_point: str = "001"
    document_type: str = "01"
    emission_type: str = "01"


class SubmitResponse(BaseModel):
    code: str
    message: str = ""
    external_id: Optional[str] = None
    qr_code: Optional[str] = None
    signed_xml: Optional[str] = None
    pdf: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return is_success(self.code)


class StatusResponse(BaseModel):
    # Kept as a plain string: unknown values must reach reconciliation intact
    remote_status: str
    external_id: Optional[str] = None
    message: str = ""


class AnnulResponse(BaseModel):
    code: str
    message: str = ""


class ArtifactResponse(BaseModel):
    code: str
    content: str = ""  # Base64
    message: str = ""


class QuotaResponse(BaseModel):
    available: int = 0
    used: int = 0
    total: int = 0
    message: str = ""


class EmailResponse(BaseModel):
    code: str
    message: str = ""


class EmailTrackingResponse(BaseModel):
    delivery_status: str
    sent_at: Optional[str] = None
    recipient: Optional[str] = None
    message: str = ""


class TaxpayerIdResponse(BaseModel):
    check_digit: str = ""
    full_id: str = ""
    valid: bool = False
    message: str = ""
