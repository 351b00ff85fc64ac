import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from pydantic import ValidationError
from sqlmodel import Session
from starlette.middleware.cors import CORSMiddleware

from courier_dispatch.api.main import api_router
from courier_dispatch.core.config import settings
from courier_dispatch.core.db import engine, init_db
from courier_dispatch.services.errors import InvalidArgumentError, NotFoundError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    if not route.tags:
        return route.name
    return f"{route.tags[0]}-{route.name}"


def format_validation_error(error: ValidationError | RequestValidationError) -> dict:
    """Flatten validation errors into `field: message` strings."""
    errors = []

    for err in error.errors():
        field = err.get("loc", [""])[-1]
        error_type = err.get("type", "")

        if "missing" in error_type:
            msg = f"{field}: field required"
        elif "enum" in error_type:
            msg = f"{field}: invalid value"
        else:
            msg = f"{field}: {err.get('msg', 'validation error')}"

        errors.append(msg)

    return {
        "detail": " | ".join(errors) if errors else "Invalid request data",
        "errors": errors,
    }


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    with Session(engine) as session:
        init_db(session)
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=format_validation_error(exc),
    )


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message},
    )


# Set all CORS enabled origins
if settings.all_cors_origins:
    allow_origins = settings.all_cors_origins
    allow_credentials = True

    if settings.ENVIRONMENT == "local":
        allow_origins = ["*"]
        allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
