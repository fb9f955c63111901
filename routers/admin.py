from fastapi import APIRouter, Depends

from routers.auth import get_auth_service
from utils.auth_service import AuthService

# Operational endpoints; expose only on a trusted network.
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
def list_users(service: AuthService = Depends(get_auth_service)):
    return service.list_accounts()


@router.delete("/users/{account_id}")
def delete_user(account_id: str, service: AuthService = Depends(get_auth_service)):
    service.delete_account(account_id)
    return {"success": True}
