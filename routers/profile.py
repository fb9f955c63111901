from fastapi import APIRouter, Depends

from routers.auth import get_auth_service, get_current_account_id
from utils.auth_service import AuthService

router = APIRouter(tags=["profile"])


@router.get("/me")
def me(
    account_id: str = Depends(get_current_account_id),
    service: AuthService = Depends(get_auth_service),
):
    """
    Public profile of the token holder. Never includes the internal id or credential.
    """
    return service.get_profile(account_id)
