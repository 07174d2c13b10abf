from .requests import AmountChangeRequest
from .responses import (
	ConversionResponse,
	FiatRateResponse,
	HealthResponse,
	MarketAdResponse,
	MarketRateResponse,
	RatesStateResponse,
)

__all__ = [
	'AmountChangeRequest',
	'ConversionResponse',
	'FiatRateResponse',
	'HealthResponse',
	'MarketAdResponse',
	'MarketRateResponse',
	'RatesStateResponse',
]
