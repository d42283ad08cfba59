from pydantic import BaseModel


class MeResponse(BaseModel):
    id: str
    email: str
    name: str | None = None
