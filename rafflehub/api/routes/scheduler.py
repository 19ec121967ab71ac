from fastapi import APIRouter

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import SchedulerStatusResponse, SchedulerTickResponse
from rafflehub.services.scheduler import get_scheduler

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.post("/tick", response_model=SchedulerTickResponse)
def run_tick():
    require_db()
    return get_scheduler().tick()


@router.get("/status", response_model=SchedulerStatusResponse)
def scheduler_status():
    return get_scheduler().status()
