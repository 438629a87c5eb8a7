"""FastAPI application entry point."""
from fastapi import FastAPI

from runboard.routers import activities, coach, health, profile, records, settings, stats, sync


app = FastAPI(title="Runboard API")


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


# Include routers
app.include_router(health.router)
app.include_router(sync.router)
app.include_router(activities.router)
app.include_router(stats.router)
app.include_router(records.router)
app.include_router(coach.router)
app.include_router(settings.router)
app.include_router(profile.router)
