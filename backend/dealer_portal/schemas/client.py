"""
Pydantic Schemas for the Client Portal
"""
import json
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from dealer_portal.models.client_account import ClientAccountStatus


class ClientIdentity(BaseModel):
    """
    The identity the client portal renders for.
    Either a real logged-in client or, with is_preview set, a client
    that staff is impersonating.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_preview: bool = Field(False, alias="isPreview")

    def to_storage(self) -> str:
        """Persisted shape: {id, name, email, phone?, isPreview}"""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
        }
        if self.phone:
            data["phone"] = self.phone
        data["isPreview"] = self.is_preview
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def from_storage(cls, raw: str) -> "ClientIdentity":
        return cls.model_validate(json.loads(raw))


class ClientAccountResponse(BaseModel):
    """Client account as shown in the admin portal list"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    dealership_id: Optional[UUID] = None
    lead_id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    status: ClientAccountStatus
    has_portal_login: bool = False


class ClientAccountListResponse(BaseModel):
    """Paginated client account list"""
    items: List[ClientAccountResponse]
    total: int
    page: int
    page_size: int
    pages: int


class ClientLoginRequest(BaseModel):
    """Client portal login"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class ImpersonationStartRequest(BaseModel):
    """Admin request to view the portal as a client"""
    client_id: str = Field(..., min_length=1, max_length=64)


class ImpersonationResponse(BaseModel):
    """Result of starting an impersonation"""
    identity: ClientIdentity
    preview_url: str


class ImpersonationStatus(BaseModel):
    impersonating: bool
    client_id: Optional[str] = None


class NavigationLink(BaseModel):
    name: str
    href: str


class PortalView(BaseModel):
    """What a client portal page renders with"""
    identity: ClientIdentity
    is_preview: bool
    page: str
    navigation: List[NavigationLink]
    exit_preview_url: Optional[str] = None
