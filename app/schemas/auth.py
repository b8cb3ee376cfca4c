from pydantic import BaseModel, Field


class User(BaseModel):
    phone: str


class Credentials(BaseModel):
    phone: str = Field(min_length=3, max_length=32)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User
