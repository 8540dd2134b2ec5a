import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.core import config
from backend.core.errors import BookingError, InternalError
from backend.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from backend.models import user, appointment, availability  # noqa: F401
from backend.routes import appointment_routes, auth_routes, availability_routes, users_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='Office Hours Booking API', debug=config.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(BookingError)
async def handle_booking_error(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        {
            'field': '.'.join(str(part) for part in error['loc'] if part not in ('body', 'query', 'path')),
            'message': error['msg'],
            'value': error.get('input'),
        }
        for error in exc.errors()
    ]
    content = {'status': 'error', 'message': 'Validation failed', 'errors': problems}
    return JSONResponse(status_code=400, content=jsonable_encoder(content))


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'status': 'error', 'message': str(exc.detail)},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Unhandled database error on %s %s', request.method, request.url.path)
    internal = InternalError()
    return JSONResponse(status_code=internal.status_code, content=internal.to_payload())


@app.get('/')
def root():
    return {'status': 'Office Hours Booking API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(users_routes.router, prefix='/users')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
