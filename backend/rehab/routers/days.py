from datetime import date as Date

from fastapi import APIRouter, Depends, HTTPException, status

from rehab.deps.engine import get_history, get_progress_store
from rehab.schemas.progress import DailyExerciseRecord, DayHistory
from rehab.services.day_history import DayHistoryStore
from rehab.services.progress_store import ProgressStore

router = APIRouter(prefix="/days", tags=["days"])

def _unavailable(err: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"storage error: {err}")

@router.get("/{day}/exercises", response_model=list[DailyExerciseRecord], response_model_by_alias=True)
def get_day_plan(day: Date, store: ProgressStore = Depends(get_progress_store)):
    res = store.load_daily(day.isoformat())
    if not res.ok:
        raise _unavailable(res.error)
    return res.value

@router.put("/{day}/exercises", response_model=list[DailyExerciseRecord], response_model_by_alias=True)
def put_day_plan(
    day: Date,
    payload: list[DailyExerciseRecord],
    store: ProgressStore = Depends(get_progress_store),
):
    res = store.save_daily(day.isoformat(), payload)
    if not res.ok:
        raise _unavailable(res.error)
    return res.value

@router.get("/{day}/history", response_model=DayHistory, response_model_by_alias=True)
def get_day_history(day: Date, history: DayHistoryStore = Depends(get_history)):
    res = history.get(day.isoformat())
    if not res.ok:
        raise _unavailable(res.error)
    if res.value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No history for this day")
    return res.value
