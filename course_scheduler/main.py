"""
Course Scheduler: schedule requests and auto-scheduling for a multi-tenant school backend.
FastAPI entry point.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from course_scheduler.core.app_logger import setup_logging
from course_scheduler.core.config import settings
from course_scheduler.core.errors import InfrastructureError, SchedulingError
from course_scheduler.routers import schedule_requests, scheduling
from course_scheduler.utils.response import error_response

logger = setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    description="Course requests, auto-scheduler and student enrollment",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error envelope: {"success": false, "error": "..."}
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if isinstance(exc, InfrastructureError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query"))
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg", "Invalid request"))
    return JSONResponse(status_code=400, content=error_response("; ".join(messages)))


# Include routers
app.include_router(schedule_requests.router)
app.include_router(scheduling.router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "auth_mode": settings.AUTH_MODE,
    }


@app.get("/api/health")
async def health():
    return {"status": "healthy", "auth_mode": settings.AUTH_MODE}
