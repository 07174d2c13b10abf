from dataclasses import asdict
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_controller
from api.schemas import (
	AmountChangeRequest,
	ConversionResponse,
	HealthResponse,
	MarketRateResponse,
	RatesStateResponse,
)
from application.services import RatesController
from domain.models.rates import MarketAggregate

router = APIRouter(prefix='/api', tags=['rates'])


def _market_response(market: MarketAggregate) -> MarketRateResponse:
	data = asdict(market)
	for ad in data['ads']:
		ad['counterparty_type'] = ad['counterparty_type'].value
	return MarketRateResponse.model_validate(data)


def _state_response(controller: RatesController) -> RatesStateResponse:
	state = controller.state
	return RatesStateResponse(
		fiat_rate=asdict(state.fiat_rate) if state.fiat_rate else None,
		market=_market_response(state.market) if state.market else None,
		amount=state.amount,
		loading=state.loading,
		refreshing=state.refreshing,
		loading_market=state.loading_market,
		recompute_phase=controller.scheduler.phase.value,
		error=state.error,
	)


@router.get(
	'/rates',
	response_model=RatesStateResponse,
	status_code=status.HTTP_200_OK,
	summary='Current rate snapshots and loading flags',
)
async def get_rates(
	controller: Annotated[RatesController, Depends(get_controller)],
) -> RatesStateResponse:
	return _state_response(controller)


@router.post(
	'/rates/refresh',
	response_model=RatesStateResponse,
	status_code=status.HTTP_200_OK,
	summary='Reload the official and marketplace rates',
)
async def refresh_rates(
	controller: Annotated[RatesController, Depends(get_controller)],
) -> RatesStateResponse:
	await controller.refresh()
	return _state_response(controller)


@router.put(
	'/amount',
	response_model=RatesStateResponse,
	status_code=status.HTTP_202_ACCEPTED,
	summary='Submit an amount edit',
)
async def submit_amount(
	request: AmountChangeRequest,
	controller: Annotated[RatesController, Depends(get_controller)],
) -> RatesStateResponse:
	if not controller.submit_amount(request.amount):
		raise HTTPException(
			status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
			detail='Monto inválido',
		)
	return _state_response(controller)


@router.get(
	'/conversion',
	response_model=ConversionResponse,
	status_code=status.HTTP_200_OK,
	summary='Derived figures for an amount',
)
async def get_conversion(
	controller: Annotated[RatesController, Depends(get_controller)],
	amount: Annotated[Decimal | None, Query(ge=0)] = None,
) -> ConversionResponse:
	result = controller.conversion(amount)
	if amount is None:
		amount = controller.current_amount()
	return ConversionResponse(amount=amount, **asdict(result))


@router.get(
	'/market/search',
	response_model=MarketRateResponse,
	status_code=status.HTTP_200_OK,
	summary='Run a one-off marketplace search',
)
async def search_market(
	controller: Annotated[RatesController, Depends(get_controller)],
	filter_amount: Annotated[Decimal | None, Query(gt=0)] = None,
	min_ads: Annotated[int, Query(ge=1, le=200)] = 5,
) -> MarketRateResponse:
	aggregate = await controller.aggregator.search(filter_amount, min_ads, controller.page_size)
	return _market_response(aggregate)


@router.get(
	'/health',
	response_model=HealthResponse,
	status_code=status.HTTP_200_OK,
	summary='Probe the official rate API',
)
async def health(
	controller: Annotated[RatesController, Depends(get_controller)],
) -> HealthResponse:
	result = await controller.check_health()
	return HealthResponse(**asdict(result))
