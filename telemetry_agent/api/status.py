from fastapi import APIRouter, Depends

from ..dependencies import get_poll_loop
from ..models import AgentStatus
from ..services.poll_loop import PollLoop

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status", response_model=AgentStatus)
async def get_status(poll_loop: PollLoop = Depends(get_poll_loop)) -> AgentStatus:
    """Poll loop state, live configuration and the last cycle's outcome"""
    return poll_loop.status()
