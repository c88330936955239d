"""
Feedline Backend - Pipeline Value Objects and Response Schemas
================================================================

What:  Pydantic models for the values that flow between pipeline stages and
       for the JSON shapes the API returns.
How:   Stage outputs (UploadResult, Identity, ErrorDetail) are frozen: once a
       stage has produced one, later stages can read it but not change it.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class UploadResult(BaseModel):
    """
    What:  Outcome of the Upload Acceptor for the request's `image` field.
    When:  Present only when the request carried an `image` file part.
           A missing field yields no UploadResult at all (None), which is
           never an error.
    """

    accepted: bool = Field(description="Whether the file was stored")
    stored_name: Optional[str] = Field(
        default=None,
        description="Name inside the images bucket: <ISO-8601 timestamp>-<client filename>",
    )
    mime_type: str = Field(description="Client-declared content type")
    size_bytes: int = Field(ge=0, description="Size of the uploaded content")

    model_config = {"frozen": True}


class Identity(BaseModel):
    """
    What:  Authentication context attached by the Auth Gate.
    How:   Unauthenticated requests carry Identity(authenticated=False); it is
           up to each operation to refuse work it does not allow anonymously.
    """

    authenticated: bool = False
    user_id: Optional[str] = None
    claims: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


ANONYMOUS = Identity()


class ErrorDetail(BaseModel):
    """
    The only error representation ever serialized to the client.

    Serialized by to_envelope() as {"message", "status", "data"}; the "data"
    key is omitted when there is no payload.
    """

    message: str
    status_code: int = 500
    payload: Any = None

    model_config = {"frozen": True}

    def to_envelope(self) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {"message": self.message, "status": self.status_code}
        if self.payload is not None:
            envelope["data"] = self.payload
        return envelope


class HealthResponse(BaseModel):
    """Returned by GET /health for container health checks and load balancers."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
