from fastapi import APIRouter, Depends

from flowboard.core.auth import Identity, get_current_user
from flowboard.schemas.auth import MeResponse

router = APIRouter(prefix="")


@router.get("/me", response_model=MeResponse)
def me(user: Identity = Depends(get_current_user)) -> MeResponse:
    return MeResponse(id=user.id, email=user.email, name=user.name)
