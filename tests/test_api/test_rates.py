import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from api.dependencies import get_controller
from api.main import app
from application.services import RatesController
from domain.exceptions.rates import AggregationError, AggregationReason, RequestTimeoutError
from domain.models.rates import HealthStatus
from infrastructure.providers.bcv import BCVRateProvider
from infrastructure.providers.binance_p2p import BinanceP2PAggregator
from tests.factories import make_aggregate, make_fiat_rate


@pytest.fixture
def mock_fiat_provider():
	provider = AsyncMock(spec=BCVRateProvider)
	provider.fetch_rate.return_value = make_fiat_rate('40.00')
	provider.check_health.return_value = HealthStatus(
		available=True, message='API disponible', rate='40.00', date='2024-05-10'
	)
	return provider


@pytest.fixture
def mock_aggregator():
	aggregator = AsyncMock(spec=BinanceP2PAggregator)
	aggregator.search.return_value = make_aggregate('42.50')
	return aggregator


@pytest.fixture
def controller(mock_fiat_provider, mock_aggregator):
	return RatesController(mock_fiat_provider, mock_aggregator)


@pytest.fixture
def client(controller):
	app.dependency_overrides[get_controller] = lambda: controller
	yield TestClient(app)
	app.dependency_overrides.clear()


def test_get_rates_before_first_load(client):
	response = client.get('/api/rates')

	assert response.status_code == 200
	data = response.json()
	assert data['fiat_rate'] is None
	assert data['market'] is None
	assert data['loading'] is True
	assert data['recompute_phase'] == 'idle'


def test_refresh_returns_loaded_snapshots(client, mock_aggregator):
	response = client.post('/api/rates/refresh')

	assert response.status_code == 200
	data = response.json()
	assert Decimal(data['fiat_rate']['rate_value']) == Decimal('40.00')
	assert data['fiat_rate']['source_label'] == 'BCV Oficial'
	assert Decimal(data['market']['average_price']) == Decimal('42.50')
	assert data['market']['ads'][0]['counterparty_type'] == 'merchant'
	assert data['market']['ads'][0]['payment_methods'] == ['Banco de Venezuela']
	assert data['loading'] is False
	assert data['error'] is None
	mock_aggregator.search.assert_awaited_once_with(None, 5, 20)


def test_refresh_failure_is_reported_in_state(client, mock_fiat_provider):
	mock_fiat_provider.fetch_rate.side_effect = RequestTimeoutError('BCV request timed out after 10.0s')

	response = client.post('/api/rates/refresh')

	assert response.status_code == 200
	data = response.json()
	assert data['fiat_rate'] is None
	assert data['error'] == 'Tiempo de espera agotado. Verifica tu conexión.'
	assert '10.0s' not in data['error']


def test_submit_amount_is_accepted(client, controller):
	response = client.put('/api/amount', json={'amount': '125.5'})

	assert response.status_code == 202
	assert response.json()['amount'] == '125.5'
	assert controller.state.amount == '125.5'


def test_submit_malformed_amount_is_rejected(client, controller):
	response = client.put('/api/amount', json={'amount': '12,5'})

	assert response.status_code == 422
	assert response.json()['detail'] == 'Monto inválido'
	assert controller.state.amount == ''


def test_conversion_for_explicit_amount(client, controller):
	controller.state.update(fiat_rate=make_fiat_rate('40.00'), market=make_aggregate('42.50'))

	response = client.get('/api/conversion', params={'amount': '100'})

	assert response.status_code == 200
	data = response.json()
	assert Decimal(data['fiat_equivalent']) == Decimal('4000.00')
	assert Decimal(data['crypto_units_needed']) == Decimal('94.12')
	assert Decimal(data['rate_delta']) == Decimal('2.50')
	assert Decimal(data['rate_delta_percent']) == Decimal('6.25')


def test_conversion_for_amount_beyond_default_decimal_precision(client, controller):
	controller.state.update(fiat_rate=make_fiat_rate('40.00'), market=make_aggregate('42.50'))

	response = client.get('/api/conversion', params={'amount': '9' * 26})

	assert response.status_code == 200
	assert Decimal(response.json()['fiat_equivalent']) == Decimal(4 * 10**27 - 40)


def test_submit_non_ascii_digits_is_rejected(client, controller):
	response = client.put('/api/amount', json={'amount': '١٢'})

	assert response.status_code == 422
	assert controller.state.amount == ''


def test_conversion_uses_stored_amount(client, controller):
	controller.state.update(
		fiat_rate=make_fiat_rate('40.00'), market=make_aggregate('42.50'), amount='10'
	)

	response = client.get('/api/conversion')

	assert response.status_code == 200
	data = response.json()
	assert Decimal(data['amount']) == Decimal('10')
	assert Decimal(data['fiat_equivalent']) == Decimal('400.00')


def test_market_search_aggregation_error(client, mock_aggregator):
	mock_aggregator.search.side_effect = AggregationError(AggregationReason.NO_VERIFIED_ADS)

	response = client.get('/api/market/search', params={'filter_amount': '4000'})

	assert response.status_code == 404
	assert response.json() == {'detail': 'No se encontraron anuncios verificados.'}
	mock_aggregator.search.assert_awaited_once_with(Decimal('4000'), 5, 20)


def test_market_search_upstream_timeout(client, mock_aggregator):
	mock_aggregator.search.side_effect = RequestTimeoutError(
		'Binance page 1 timed out after 15.0s',
		user_message='Tiempo de espera agotado al conectar con Binance.',
	)

	response = client.get('/api/market/search')

	assert response.status_code == 503
	assert response.json() == {'detail': 'Tiempo de espera agotado al conectar con Binance.'}


def test_market_search_success(client):
	response = client.get('/api/market/search', params={'min_ads': 3})

	assert response.status_code == 200
	assert response.json()['ad_count'] == 1


def test_health(client):
	response = client.get('/api/health')

	assert response.status_code == 200
	assert response.json() == {
		'available': True,
		'message': 'API disponible',
		'rate': '40.00',
		'date': '2024-05-10',
	}
