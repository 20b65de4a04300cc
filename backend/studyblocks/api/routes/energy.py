from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studyblocks.api import deps
from studyblocks.schemas.energy import EnergyFeedback, EnergyProfile
from studyblocks.services.repository import get_preferences, read_energy_profile
from studyblocks.services.rescheduler import DynamicRescheduler

router = APIRouter()


def _store_profile(db: Session, profile: EnergyProfile) -> None:
    preferences = get_preferences(db)
    preferences.energy_profile = profile.model_dump(mode="json")
    db.commit()


@router.get("/", response_model=EnergyProfile)
def get_energy_profile(db: Session = Depends(deps.get_db)) -> EnergyProfile:
    profile = read_energy_profile(get_preferences(db))
    db.commit()
    return profile


@router.put("/", response_model=EnergyProfile)
def replace_energy_profile(
    payload: EnergyProfile,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> EnergyProfile:
    _store_profile(db, payload)
    rescheduler.on_energy_profile_updated(payload)
    return payload


@router.post("/feedback", response_model=EnergyProfile)
def record_energy_feedback(
    payload: EnergyFeedback,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> EnergyProfile:
    """Nudge one hour of the curve toward how productive that hour actually was."""
    profile = read_energy_profile(get_preferences(db)).with_feedback(
        payload.hour, payload.observed, payload.learning_rate
    )
    _store_profile(db, profile)
    rescheduler.on_energy_profile_updated(profile)
    return profile
