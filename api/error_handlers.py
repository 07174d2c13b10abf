import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from domain.exceptions.rates import AggregationError, RateError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(AggregationError)
	async def aggregation_error_handler(request: Request, exc: AggregationError):
		logger.warning(f'Aggregation error: {exc}')
		return JSONResponse(status_code=404, content={'detail': exc.user_message})

	@app.exception_handler(RateError)
	async def rate_error_handler(request: Request, exc: RateError):
		logger.error(f'Rate provider error: {exc}')
		return JSONResponse(status_code=503, content={'detail': exc.user_message})
