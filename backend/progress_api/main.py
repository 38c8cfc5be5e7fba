from fastapi import FastAPI

from .db import Base, engine
from .logging_config import configure_logging
from .settings import settings
from .routers import health
from .routers import auth
from .routers import roster
from .routers import progress
from .routers import analytics

app = FastAPI(title="Vocabulary Progress Analytics API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(roster.router)
app.include_router(progress.router)
app.include_router(analytics.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"summary_configured": bool(settings.anthropic_api_key or settings.openrouter_api_key),
	}


@app.on_event("startup")
async def startup_event():
	configure_logging(settings.log_level)
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
