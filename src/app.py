"""Landing Contact Service - FastAPI server for the landing page contact form."""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.contact.errors import ContactAPIError
from src.shared.contact.responses import error_response
from src.shared.contact.routes import router as contact_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Landing Contact Service",
    description="Contact form endpoint for the landing page, delivering submissions by email",
    version="0.1.0"
)

# CORS configuration - must be added before exception handlers
cors_origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()]
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False,
        allow_methods=["POST"],
        allow_headers=["Content-Type"],
    )

# Include contact routes
app.include_router(contact_router)

HTTP_ERROR_MESSAGES = {
    404: "Risorsa non trovata",
    405: "Metodo non consentito",
}


@app.exception_handler(ContactAPIError)
async def contact_api_exception_handler(request: Request, exc: ContactAPIError):
    """Render contact API errors as {"error": message}."""
    return error_response(exc.status_code, exc.message, headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Keep routing errors (404, 405) in the same JSON shape; 405 keeps its Allow header."""
    message = HTTP_ERROR_MESSAGES.get(exc.status_code)
    if message is None:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logging.warning(f"Request validation failed: {exc.errors()}")
    return error_response(422, "Richiesta non valida")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Last-resort handler so clients always get JSON."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return error_response(500, "Errore interno")


@app.get("/")
async def root():
    return {"message": "Landing Contact Service is running", "status": "ok"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
