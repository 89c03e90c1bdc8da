"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., description="Unique login name")
    password: str = Field(..., description="Plain-text password, hashed before storage")


class RegisterResponse(BaseModel):
    """Registration acknowledgement."""

    success: bool = True
    username: str


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    username: str
    password: str


class LoginResponse(BaseModel):
    """Response returned after successful login."""

    success: bool = True
    username: str
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")


class MeResponse(BaseModel):
    """Identity resolved from the presented token."""

    authenticated: bool = True
    username: str


class ProfileResponse(BaseModel):
    """Public profile of an account; never includes the password hash."""

    username: str
    created_at: int
    display_name: str | None = None
    bio: str | None = None
    photo_url: str | None = None
    emoji: str | None = None


class ProfileUpdateRequest(BaseModel):
    """Schema for partial profile updates."""

    display_name: str | None = Field(None, alias="displayName", max_length=100)
    bio: str | None = Field(None, max_length=500)
    photo_url: str | None = Field(None, alias="photoUrl", max_length=2048)
    emoji: str | None = Field(None, max_length=16)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("display_name", "bio")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace from free-text fields."""
        if v is None:
            return v
        return v.strip()


class PhotoUploadResponse(BaseModel):
    """Public URL of an uploaded profile photo."""

    url: str


class UserSearchResponse(BaseModel):
    """Usernames matching a search query."""

    users: list[str]


class PushTokenRequest(BaseModel):
    """Device token registration for push notifications."""

    push_token: str = Field(..., alias="pushToken", min_length=1, max_length=4096)

    model_config = ConfigDict(populate_by_name=True)
