"""Login payload and the public user shape."""

from purchasing.schemas.common import CamelModel


class LoginRequest(CamelModel):
    email: str
    password: str


class UserOut(CamelModel):
    id: str
    email: str
    name: str
    role: str
    phone_number: str | None = None
    is_active: bool
