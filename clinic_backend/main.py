import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.core.errors import ApiError, StorageError
from clinic_backend.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from clinic_backend.models import appointment, availability, schedule  # noqa: F401
from clinic_backend.routes import appointment_routes, availability_routes, schedule_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='[%(levelname)s] %(asctime)s %(name)s - %(message)s',
)

app = FastAPI(title='Clinic Scheduling API', version='1.0.0')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={'success': False, 'error': 'Internal server error'},
        )

    return JSONResponse(status_code=exc.status_code, content={'success': False, 'message': exc.message})


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = 'Invalid request'
    if errors:
        message = str(errors[0].get('msg', message)).removeprefix('Value error, ')
    logger.warning('Rejected %s %s: %s', request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'success': False, 'message': message},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'success': False, 'error': 'Internal server error'},
    )


app.add_exception_handler(ApiError, handle_api_error)
app.add_exception_handler(RequestValidationError, handle_request_validation_error)
app.add_exception_handler(Exception, handle_unexpected_error)


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


@app.get('/health')
def health():
    return {
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'environment': config.APP_ENV,
    }


app.include_router(schedule_routes.router, prefix=f'{config.API_PREFIX}/doctor-schedules')
app.include_router(availability_routes.router, prefix=f'{config.API_PREFIX}/doctor-availabilities')
app.include_router(appointment_routes.router, prefix=f'{config.API_PREFIX}/appointments')
