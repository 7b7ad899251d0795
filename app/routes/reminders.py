from typing import Optional
from fastapi import APIRouter, Depends
from app.models.user import User, UserRole
from app.services.job_scheduler import job_scheduler
from app.utils.dependencies import get_current_user
from app.utils.exceptions import ForbiddenError
from app.utils.response import APIResponse

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.post("/run", summary="Run one reminder tick now")
def run_reminders(actor: Optional[User] = Depends(get_current_user)):
    if actor is None or actor.role != UserRole.ADMIN:
        raise ForbiddenError("Only admins can trigger reminders")
    result = job_scheduler.run_reminders_now()
    return APIResponse.success(result.to_dict(), message="Reminder run complete")
