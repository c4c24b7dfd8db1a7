import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.sessions import SessionMiddleware

from school_backend.api.actions import action_router
from school_backend.api.attendance import attendance_router
from school_backend.api.auth import auth_router
from school_backend.api.classes import class_router
from school_backend.api.events import event_router
from school_backend.api.grades import grade_router
from school_backend.api.messages import message_router
from school_backend.api.notifications import notification_router
from school_backend.api.parents import parent_router
from school_backend.api.students import student_router
from school_backend.api.teachers import teacher_router
from school_backend.api.users import user_router
from school_backend.database import get_db
from school_backend.interface.results import validation_errors
from school_backend.permissions.auth import get_current_principal
from school_backend.services.users import create_admin_user
from school_backend.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)


def init_admin_user():
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return

    with next(get_db()) as db:
        create_admin_user(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DEBUG_MODE == "production":
        init_admin_user()
    yield


app = FastAPI(lifespan=lifespan)

origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie=settings.SESSION_COOKIE,
    max_age=settings.SESSION_MAX_AGE,
    https_only=settings.DEBUG_MODE == "production",
)


def _invalid_input(exc) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"error": "Invalid input", "errors": validation_errors(exc)}},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _invalid_input(exc)


# Query models resolved through Depends() validate outside FastAPI's request parsing
@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError):
    return _invalid_input(exc)


app.include_router(
    auth_router,
    prefix="/auth",
    tags=["auth"]
)

app.include_router(
    action_router,
    prefix="/actions",
    tags=["actions"]
)

for router, prefix, tag in (
    (class_router, "/classes", "classes"),
    (student_router, "/students", "students"),
    (teacher_router, "/teachers", "teachers"),
    (parent_router, "/parents", "parents"),
    (grade_router, "/grades", "grades"),
    (attendance_router, "/attendance", "attendance"),
    (message_router, "/messages", "messages"),
    (event_router, "/events", "events"),
    (notification_router, "/notifications", "notifications"),
    (user_router, "/users", "users"),
):
    app.include_router(
        router,
        prefix=prefix,
        tags=[tag],
        dependencies=[Depends(get_current_principal)]
    )


@app.head("/", status_code=204)
def get_status_head():
    return
