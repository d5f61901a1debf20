from datetime import date as Date

from fastapi import APIRouter, Depends, HTTPException, Response, status

from rehab.deps.engine import get_progress_store, get_resolver
from rehab.schemas.progress import ExerciseProgress
from rehab.services.progress_store import ProgressStore
from rehab.services.settings_resolver import SettingsResolver

router = APIRouter(tags=["progress"])

@router.get("/progress/{exercise_type}/{day}", response_model=ExerciseProgress,
            response_model_by_alias=True, response_model_exclude_none=True)
def get_progress(exercise_type: str, day: Date, store: ProgressStore = Depends(get_progress_store)):
    res = store.load(exercise_type, day.isoformat())
    # unreadable records count as no progress
    if res.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No progress saved")
    return res.value

@router.delete("/progress/{exercise_type}/{day}", status_code=status.HTTP_204_NO_CONTENT)
def clear_progress(exercise_type: str, day: Date, store: ProgressStore = Depends(get_progress_store)):
    res = store.clear(exercise_type, day.isoformat())
    if not res.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"storage error: {res.error}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/exercises/{exercise_id}/manual-settings")
def get_manual_settings(exercise_id: str, resolver: SettingsResolver = Depends(get_resolver)):
    res = resolver.manual_settings(exercise_id)
    if res.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No manual settings")
    return res.value

@router.put("/exercises/{exercise_id}/manual-settings")
def put_manual_settings(
    exercise_id: str,
    payload: dict,
    resolver: SettingsResolver = Depends(get_resolver),
):
    res = resolver.save_manual_settings(exercise_id, payload)
    if not res.ok:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"storage error: {res.error}")
    return res.value
