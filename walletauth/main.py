from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging # Add logging config

from . import config

# Configure basic logging
logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Import routers
from .routers import auth, wallet

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Wallet Auth Backend",
    description="Passwordless sign-in: a wallet signs a challenge and the backend issues an exchange credential for a session.",
    version="0.1.0"
)

# --- CORS Configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,  # List of origins that are allowed to make requests
    allow_credentials=True, # Allow cookies/authorization headers
    allow_methods=["*"],    # Allow all methods (GET, POST, etc.)
    allow_headers=["*"],    # Allow all headers
)


# Malformed bodies are invalid input (400), reported in the same shape as other errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in exc.errors()]
    logger.warning(f"Invalid request to {request.url.path}: fields {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"kind": "invalid_input", "message": f"Missing or malformed fields: {', '.join(fields)}"}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"kind": "internal_error", "message": "An internal error occurred."}},
    )


# Include routers
app.include_router(auth.router)
app.include_router(wallet.router)


@app.get("/", tags=["Health Check"])
def read_root():
    """Root endpoint for health check."""
    return {"status": "ok", "message": "Wallet Auth Backend is running."}


# --- Server Startup (for local development) ---
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("walletauth.main:app", host="0.0.0.0", port=8000, reload=True) # Use reload for development
