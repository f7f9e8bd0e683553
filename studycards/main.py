import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from studycards.core.config import Settings, load_settings, validate_runtime_config
from studycards.core.errors import AppError, DatabaseUnavailable, ValidationFailed
from studycards.database import build_engine, build_session_factory, init_schema
from studycards.routes import admin_routes, auth_routes, flashcard_routes, user_routes

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
}


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path')]
        message = str(error.get('msg', 'Invalid value.'))
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        errors.append({'field': '.'.join(location) or 'body', 'message': message})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(_request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_request: Request, exc: RequestValidationError):
        error = ValidationFailed(errors=_field_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_request: Request, exc: StarletteHTTPException):
        content = {
            'success': False,
            'error': HTTP_ERROR_CODES.get(exc.status_code, 'HTTP_ERROR'),
            'message': str(exc.detail),
        }
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(_request: Request, exc: SQLAlchemyError):
        logger.exception('Database error while handling request', exc_info=exc)
        error = DatabaseUnavailable()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory; serve with ``uvicorn --factory studycards.main:create_app``."""
    settings = settings or load_settings()
    validate_runtime_config(settings)

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            init_schema(engine)
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL.')
        yield
        engine.dispose()

    app = FastAPI(title='StudyCards API', lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    register_exception_handlers(app)

    @app.get('/')
    def root():
        return {'success': True, 'status': 'StudyCards API Running'}

    app.include_router(auth_routes.router, prefix='/api/auth')
    app.include_router(user_routes.router, prefix='/api/users')
    app.include_router(flashcard_routes.router, prefix='/api/flashcards')
    app.include_router(admin_routes.router, prefix='/api/admin')

    return app
