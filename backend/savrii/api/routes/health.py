from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for the load balancer."""
    return {"status": "healthy", "service": "savrii-backend"}
