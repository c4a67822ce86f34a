from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

import database
from config import get_settings
from logger import get_logger
from routes_farmers import router as farmers_router
from routes_ngos import router as ngos_router
from routes_users import router as users_router
from routes_vendors import router as vendors_router

log = get_logger(__name__)

settings = get_settings()

app = FastAPI(title="AgriSense API", version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users_router)
app.include_router(farmers_router)
app.include_router(vendors_router)
app.include_router(ngos_router)


@app.on_event("startup")
def startup_event():
    try:
        database.ensure_indexes()
    except Exception as e:
        # keep serving; the health check reports the database state
        log.warning("Could not create Mongo indexes: %s", e)
    log.info("AgriSense API started in %s mode", settings.ENVIRONMENT)


# ------------------------- Error handlers -------------------------

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation error", "errors": jsonable_encoder(errors)})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=400, content={"detail": "Duplicate value for a unique field"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ------------------------- Root and health -------------------------

@app.get("/")
def read_root():
    return {
        "status": "ok",
        "message": "AgriSense API is running",
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
    }


@app.get("/health")
def health():
    try:
        database.ping()
    except (PyMongoError, RuntimeError) as e:
        log.warning("Health check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": str(e)[:80]})
    return {"status": "healthy", "database": "connected"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
