"""
Pydantic schemas for linked collection accounts.

Credential material only ever travels as ``SecretStr`` so it cannot leak
through ``repr``, logs or serialized output by accident.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..constants import Limits


class CredentialPair(BaseModel):
    """OAuth 1.0a access token and token secret for one connection."""

    model_config = ConfigDict(frozen=True)

    access_token: SecretStr = Field(..., description="OAuth access token")
    access_token_secret: SecretStr = Field(..., description="OAuth access token secret")

    @field_validator("access_token", "access_token_secret")
    @classmethod
    def validate_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("Credential values cannot be empty")
        return v


class ConnectionRead(BaseModel):
    """Connection as exposed to callers; never carries credential material."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_user_id: str
    name: str
    external_account_id: str
    external_username: str
    is_primary: bool
    connected_at: datetime


class ConnectionRename(BaseModel):
    """Validated display name for a connection."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=Limits.MAX_CONNECTION_NAME_LENGTH)


class RemoteIdentity(BaseModel):
    """Identity of the account an access token belongs to."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    username: str


class RequestToken(BaseModel):
    """Temporary credentials for the first leg of the OAuth handshake."""

    token: str
    secret: SecretStr
    authorize_url: str
