from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ..models.contract import ContractStatus
from ..models.signature import SignatureStatus, SignerKind


class ContractCreate(BaseModel):
    participation_id: int
    due_date: Optional[datetime] = None
    template_id: Optional[str] = None


class ContractSend(BaseModel):
    co_signer_ids: List[int] = []


class SignatureSubmit(BaseModel):
    # Data URL or storage key of the captured signature image
    signature_image_url: Optional[str] = Field(default=None, max_length=500_000)


class SignatureResponse(BaseModel):
    id: int
    contract_id: int
    signer_id: int
    signer_kind: SignerKind
    status: SignatureStatus
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContractResponse(BaseModel):
    id: int
    booking_id: int
    booking_talent_id: int
    title: str
    content: str
    pdf_url: Optional[str] = None
    status: ContractStatus
    due_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int
    created_by: int
    created_at: datetime
    updated_at: datetime
    signatures: List[SignatureResponse] = []

    model_config = {"from_attributes": True}


class ContractTemplateResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str

    model_config = {"from_attributes": True}
