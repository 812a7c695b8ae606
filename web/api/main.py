"""FastAPI back-office API."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arena.models.base import init_db

from web.api.alert_routes import router as alerts_router
from web.api.dashboard_routes import router as dashboard_router
from web.api.routes import router as tournaments_router
from web.api.user_routes import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="Arena Back Office API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(tournaments_router)
app.include_router(users_router)
app.include_router(alerts_router)
app.include_router(dashboard_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
