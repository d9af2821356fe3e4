from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from ..db import get_session
from ..security import ADMIN, require_roles
from ..services.configuration import ConfigTypeMismatchError, ConfigurationStore, prune_default_configuration


router = APIRouter(prefix="/config", tags=["config"])


class ConfigEdit(BaseModel):
    value: str

    model_config = ConfigDict(extra="forbid")


@router.get("/", response_model=Dict[str, Any])
def get_config(session=Depends(get_session)):
    return ConfigurationStore(session).get()


@router.put("/{name}", response_model=Dict[str, Any])
def edit_config(
    name: str,
    payload: ConfigEdit,
    background_tasks: BackgroundTasks,
    session=Depends(get_session),
    user=Depends(require_roles(ADMIN)),
):
    try:
        config = ConfigurationStore(session).set(name, payload.value)
    except ConfigTypeMismatchError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    background_tasks.add_task(prune_default_configuration)
    return config
