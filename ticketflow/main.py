"""
Ticketflow - FastAPI Backend
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketflow.config import get_settings
from ticketflow.dependencies import get_ticket_service
from ticketflow.middleware.logging_middleware import LoggingMiddleware
from ticketflow.routes import health, tickets
from ticketflow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # let in-flight pipeline runs and emails finish before shutdown
    await get_ticket_service().runner.drain()


app = FastAPI(
    title="Ticketflow",
    description="Support ticket backend with LangGraph processing pipeline",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(tickets.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"message": "Ticketflow API", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
