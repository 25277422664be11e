from pydantic import BaseModel, EmailStr, model_validator


class LoginRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {"email": "admin@example.com", "password": "change-me"},
                {"username_or_email": "admin", "password": "change-me"},
            ]
        }
    }

    email: EmailStr | None = None
    username_or_email: str | None = None
    password: str

    @model_validator(mode="after")
    def ensure_identifier(self):
        if not self.email and not self.username_or_email:
            raise ValueError("email or username_or_email is required")
        return self


class TokenResponse(BaseModel):
    model_config = {
        "json_schema_extra": {"example": {"access_token": "<jwt>", "token_type": "bearer", "trace_id": "trace-123"}}
    }

    access_token: str
    token_type: str = "bearer"
    trace_id: str


class OAuth2TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    username: str
    email: EmailStr
    role: str
    is_active: bool
    trace_id: str
