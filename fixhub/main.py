# fixhub/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fixhub.core.config import settings
from fixhub.core.errors import FixHubError
from fixhub.db.mongo import init_db, close_db
from fixhub.api.v1.auth import router as auth_router
from fixhub.api.v1.users import router as users_router
from fixhub.api.v1.jobs import router as jobs_router
from fixhub.api.v1.ratings import router as ratings_router
from fixhub.api.v1.chat import router as chat_router, ws_router as chat_ws_router
from fixhub.api.v1.llm import router as llm_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="FixHub API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(jobs_router, prefix="/api/v1")
app.include_router(ratings_router, prefix="/api/v1")
app.include_router(chat_router, prefix="/api/v1")
app.include_router(llm_router, prefix="/api/v1")
# sockets are mounted at the root: /ws/chat
app.include_router(chat_ws_router)


@app.exception_handler(FixHubError)
async def fixhub_error_handler(request: Request, exc: FixHubError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "code": "validation_error"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # driver errors and stack traces stay in the server log
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "internal_error"})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    await init_db()


@app.on_event("shutdown")
async def shutdown_event():
    close_db()
