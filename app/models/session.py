"""
Upstream session model.

Lives only for the duration of one export request.
"""
from pydantic import BaseModel, ConfigDict


class UpstreamSession(BaseModel):
    """Session cookie and tenant id returned by the platform login."""
    model_config = ConfigDict(frozen=True)

    token: str      # "PLAY_SESSION=..." cookie pair
    tenant_id: str  # empresa.uid, sent as the "cco" header

    def auth_headers(self) -> dict[str, str]:
        return {"Cookie": self.token, "cco": self.tenant_id}

    def __repr__(self):
        return f"<UpstreamSession(tenant_id={self.tenant_id})>"
