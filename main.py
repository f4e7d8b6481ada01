from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, engine
from routes import trips, gear, families
from services.errors import DomainError
from utils.logger import setup_api_logger

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Community Trips API (Trips, Attendance, Gear, Families)")

# setup file logger for API failures
api_logger = setup_api_logger()


@app.exception_handler(DomainError)
async def domain_exception_handler(request, exc: DomainError):
    api_logger.warning("%s on %s %s | status=%s | detail=%s",
                       type(exc).__name__, request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.kind})


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    api_logger.warning("HTTPException on %s %s | status=%s | detail=%s",
                       request.method, request.url.path, exc.status_code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    api_logger.error("Unhandled exception on %s %s | error=%s",
                     request.method, request.url.path, str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(trips.router)
app.include_router(gear.router)
app.include_router(families.router)
