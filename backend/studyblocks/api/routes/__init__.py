from fastapi import APIRouter

from studyblocks.api.routes import blocks, energy, events, schedule, tasks


api_router = APIRouter()
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(blocks.router, prefix="/blocks", tags=["blocks"])
api_router.include_router(energy.router, prefix="/energy", tags=["energy"])
api_router.include_router(schedule.router, prefix="/schedule", tags=["schedule"])
