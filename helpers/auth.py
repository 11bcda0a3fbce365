from fastapi import Header, HTTPException, status
from typing import Optional


async def get_actor_id(x_actor_id: Optional[str] = Header(default=None)) -> int:
    """Return the already-authorized actor id set by the upstream auth layer."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity"
        )
    try:
        actor_id = int(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor identity"
        )
    if actor_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor identity"
        )
    return actor_id
