## Main application entry point
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from programme_designer.db.session import init_db
from programme_designer.errors import DesignerError, NotFound, PersistenceError, TemplateUnavailable, ValidationError
from programme_designer.logging_config import configure_logging
from programme_designer.modules.routes import router as modules_router
from programme_designer.programmes.routes import router as programmes_router
from programme_designer.schedule_templates.routes import router as templates_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title="Programme Designer", lifespan=lifespan)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(TemplateUnavailable)
async def template_unavailable_handler(request: Request, exc: TemplateUnavailable):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse({"error": str(exc), "details": exc.errors}, status_code=422)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.exception_handler(DesignerError)
async def designer_error_handler(request: Request, exc: DesignerError):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)

app.include_router(programmes_router)
app.include_router(modules_router)
app.include_router(templates_router)
