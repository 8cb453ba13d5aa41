from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarHTTP
import logging

from .ai.registry import ModelNotFound
from .engine.conditions import ConditionValidationError
from .engine.scholarship_config import UnknownScholarship

logger = logging.getLogger("scholarmatch")

def install_error_handlers(app):
    @app.exception_handler(StarHTTP)
    async def http_exc(_: Request, exc: StarHTTP):
        return JSONResponse({"error": f"HTTP_{exc.status_code}", "detail": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(ModelNotFound)
    async def model_missing(_: Request, exc: ModelNotFound):
        return JSONResponse({"error": "MODEL_NOT_FOUND", "detail": f"Model {exc} not found"}, status_code=404)

    @app.exception_handler(UnknownScholarship)
    async def scholarship_missing(_: Request, exc: UnknownScholarship):
        return JSONResponse({"error": "SCHOLARSHIP_NOT_FOUND", "detail": f"Scholarship {exc.args[0]} not found"}, status_code=404)

    @app.exception_handler(ConditionValidationError)
    async def bad_condition(_: Request, exc: ConditionValidationError):
        return JSONResponse({"error": "INVALID_CONDITION", "detail": str(exc)}, status_code=422)

    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse({"error": "INTERNAL_ERROR", "detail": "Unexpected error"}, status_code=500)
