import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.dependencies import bootstrap, cleanup_dependencies, init_dependencies
from api.error_handlers import register_exception_handlers
from api.routes import rates
from config.settings import get_settings
from infrastructure.monitoring.logger import setup_logging

logger = logging.getLogger(__name__)


settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
	setup_logging(
		level='DEBUG' if settings.DEBUG else settings.LOG_LEVEL,
		json_output=settings.LOG_JSON,
		log_directory=settings.LOG_DIRECTORY,
	)
	logger.info('Starting BCV vs P2P calculator API...')

	init_dependencies()
	await bootstrap()

	logger.info('Application ready')

	yield

	logger.info('Shutting down...')
	await cleanup_dependencies()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
	logger.error(f'Unhandled exception: {exc}', exc_info=True)
	return JSONResponse(status_code=500, content={'detail': 'Ocurrió un error inesperado.'})


app.include_router(rates.router)
register_exception_handlers(app)
