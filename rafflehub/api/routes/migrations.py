from fastapi import APIRouter

from rafflehub.api.dependencies import require_db
from rafflehub.models.schemas import MigrationRunResponse
from rafflehub.services import migrations

router = APIRouter(prefix="/migrations", tags=["migrations"])


@router.post("/run", response_model=MigrationRunResponse)
def run_migrations():
    require_db()
    return migrations.run_migrations()
