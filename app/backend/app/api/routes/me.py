"""Current user endpoint."""

from fastapi import APIRouter, Depends

from app.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the acting user recorded on audit fields."""

    return {
        "id": str(context.user_id),
        "microsoft_oid": context.microsoft_oid,
        "email": context.email,
        "display_name": context.display_name,
        "status": context.status,
    }
