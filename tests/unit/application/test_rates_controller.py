# nosec B101


import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from application.services.rates_controller import RatesController
from domain.exceptions.rates import AggregationError, AggregationReason, ConnectivityError, HttpError
from infrastructure.providers.bcv import BCVRateProvider
from infrastructure.providers.binance_p2p import BinanceP2PAggregator
from tests.factories import make_aggregate, make_fiat_rate


@pytest.fixture
def mock_fiat_provider():
	provider = AsyncMock(spec=BCVRateProvider)
	provider.fetch_rate.return_value = make_fiat_rate('40.00')
	return provider


@pytest.fixture
def mock_aggregator():
	aggregator = AsyncMock(spec=BinanceP2PAggregator)
	aggregator.search.return_value = make_aggregate('42.50')
	return aggregator


@pytest.fixture
def controller(mock_fiat_provider, mock_aggregator):
	controller = RatesController(mock_fiat_provider, mock_aggregator, debounce_seconds=0.05)
	yield controller
	controller.scheduler.close()


def test_initial_state_is_not_loaded(controller):
	assert controller.state.fiat_rate is None
	assert controller.state.market is None
	assert controller.state.loading is True
	assert controller.state.error is None


@pytest.mark.asyncio
async def test_load_rates_sets_both_snapshots(controller, mock_fiat_provider, mock_aggregator):
	state = await controller.load_rates()

	assert state is controller.state
	assert state.fiat_rate == make_fiat_rate('40.00')
	assert state.market.average_price == Decimal('42.50')
	assert state.loading is False
	assert state.error is None
	mock_fiat_provider.fetch_rate.assert_awaited_once()
	mock_aggregator.search.assert_awaited_once_with(None, 5, 20)


@pytest.mark.asyncio
async def test_fiat_failure_does_not_block_market(controller, mock_fiat_provider):
	mock_fiat_provider.fetch_rate.side_effect = ConnectivityError(
		'BCV request failed: ConnectError',
		user_message='No se pudo conectar con el servidor BCV.',
	)

	state = await controller.load_rates()

	assert state.fiat_rate is None
	assert state.market.average_price == Decimal('42.50')
	assert state.error == 'No se pudo conectar con el servidor BCV.'
	assert state.loading is False


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_snapshots(controller, mock_fiat_provider, mock_aggregator):
	await controller.load_rates()
	previous_fiat, previous_market = controller.state.fiat_rate, controller.state.market

	mock_fiat_provider.fetch_rate.side_effect = HttpError(502)
	mock_aggregator.search.side_effect = AggregationError(AggregationReason.NO_VERIFIED_ADS)
	state = await controller.refresh()

	assert state.fiat_rate is previous_fiat
	assert state.market is previous_market
	assert state.error == 'El servidor respondió con un error (502).'
	assert state.refreshing is False


@pytest.mark.asyncio
async def test_refresh_flags_are_observable(controller):
	seen = []
	unsubscribe = controller.subscribe(lambda state: seen.append((state.refreshing, state.loading)))

	await controller.refresh()
	assert (True, True) in seen
	assert seen[-1] == (False, False)

	unsubscribe()
	notified = len(seen)
	await controller.refresh()

	assert len(seen) == notified


@pytest.mark.asyncio
async def test_unexpected_error_still_clears_loading(controller, mock_aggregator):
	mock_aggregator.search.side_effect = KeyError('boom')

	with pytest.raises(KeyError):
		await controller.load_rates()

	assert controller.state.loading is False


@pytest.mark.asyncio
async def test_new_fiat_rate_rearms_pending_amount(controller, mock_aggregator):
	assert controller.submit_amount('100') is True
	assert controller.scheduler.has_pending_timer is False

	await controller.load_rates()
	assert controller.scheduler.has_pending_timer is True

	await asyncio.sleep(0.1)
	await controller.scheduler.drain()

	assert mock_aggregator.search.await_args_list[-1].args == (Decimal('4000.00'), 5, 20)


@pytest.mark.asyncio
async def test_load_result_older_than_amount_search_is_discarded(controller, mock_aggregator):
	await controller.load_rates()
	release_general = asyncio.Event()
	general, filtered = make_aggregate('41.00'), make_aggregate('42.90')

	async def fake_search(filter_amount, min_ads, page_size):
		if filter_amount is None:
			await release_general.wait()
			return general
		return filtered

	mock_aggregator.search.side_effect = fake_search

	refresh = asyncio.create_task(controller.refresh())
	await asyncio.sleep(0)
	controller.submit_amount('100')
	await asyncio.sleep(0.1)
	await controller.scheduler.drain()
	assert controller.state.market is filtered

	release_general.set()
	await refresh

	assert controller.state.market is filtered


@pytest.mark.asyncio
async def test_conversion_uses_current_amount(controller):
	await controller.load_rates()
	controller.submit_amount('100')

	result = controller.conversion()

	assert result.fiat_equivalent == Decimal('4000.00')
	assert result.crypto_units_needed == Decimal('94.12')
	assert controller.current_amount() == Decimal('100')


def test_conversion_before_load(controller):
	result = controller.conversion(Decimal('100'))

	assert result.fiat_equivalent == Decimal('0')


@pytest.mark.asyncio
async def test_check_health_delegates(controller, mock_fiat_provider):
	await controller.check_health()

	mock_fiat_provider.check_health.assert_awaited_once()


@pytest.mark.asyncio
async def test_aclose_cancels_timer_and_closes_clients(controller, mock_fiat_provider, mock_aggregator):
	await controller.load_rates()
	controller.submit_amount('100')

	await controller.aclose()

	assert controller.scheduler.has_pending_timer is False
	mock_fiat_provider.close.assert_awaited_once()
	mock_aggregator.close.assert_awaited_once()
