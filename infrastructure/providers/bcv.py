import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

import httpx

from domain.exceptions.rates import ConnectivityError, HttpError, ParseError, RateError, RequestTimeoutError
from domain.models.rates import FiatRate, HealthStatus, truncate2

logger = logging.getLogger(__name__)


def format_display_date(iso_date: str) -> str:
	"""Render an ISO-8601 date the way es-ES short dates read (d/m/yyyy)."""
	parsed = datetime.fromisoformat(iso_date.replace('Z', '+00:00'))
	return f'{parsed.day}/{parsed.month}/{parsed.year}'


class BCVRateProvider:
	DEFAULT_URL = 'https://bcv-api.rafnixg.dev/rates/'
	SOURCE_LABEL = 'BCV Oficial'

	def __init__(
		self,
		url: str = DEFAULT_URL,
		client: httpx.AsyncClient | None = None,
		timeout: float = 10.0,
		health_timeout: float = 5.0,
	):
		self.url = url
		self.timeout = timeout
		self.health_timeout = health_timeout
		self._client = client or httpx.AsyncClient(
			headers={'Accept': 'application/json', 'Content-Type': 'application/json'},
		)

	async def _request(self, timeout: float) -> dict:
		try:
			response = await self._client.get(self.url, timeout=timeout)
			response.raise_for_status()
		except httpx.TimeoutException as e:
			raise RequestTimeoutError(f'BCV request timed out after {timeout}s') from e
		except httpx.HTTPStatusError as e:
			raise HttpError(e.response.status_code, f'BCV HTTP error {e.response.status_code}') from e
		except httpx.RequestError as e:
			raise ConnectivityError(
				f'BCV request failed: {e.__class__.__name__}',
				user_message='No se pudo conectar con el servidor BCV.',
			) from e

		try:
			data = response.json()
		except ValueError as e:
			raise ParseError(f'BCV response is not valid JSON: {str(e)}') from e
		if not isinstance(data, dict):
			raise ParseError('BCV response is not a JSON object')
		return data

	async def fetch_rate(self) -> FiatRate:
		data = await self._request(self.timeout)

		try:
			raw_rate = data['dollar']
			iso_date = str(data['date'])
			rate_value = Decimal(str(raw_rate))
			as_of_date = format_display_date(iso_date)
		except KeyError as e:
			raise ParseError(f'Missing field {e} in BCV response') from e
		except (InvalidOperation, ValueError) as e:
			raise ParseError(f'Malformed BCV response: {str(e)}') from e

		if not rate_value.is_finite():
			raise ParseError(f'Non-numeric BCV rate: {raw_rate!r}')

		rate = FiatRate(
			rate_value=truncate2(rate_value),
			as_of_date=as_of_date,
			iso_date=iso_date,
			source_label=self.SOURCE_LABEL,
		)
		logger.info(f'BCV rate {rate.rate_value} as of {rate.as_of_date}')
		return rate

	async def check_health(self) -> HealthStatus:
		try:
			data = await self._request(self.health_timeout)
		except HttpError:
			return HealthStatus(available=False, message='API no responde correctamente')
		except RateError as e:
			return HealthStatus(available=False, message=f'API no disponible: {e.user_message}')
		except Exception as e:
			logger.error(f'Unexpected error during BCV health check: {e}')
			return HealthStatus(available=False, message='API no disponible')

		rate = data.get('dollar')
		date = data.get('date')
		return HealthStatus(
			available=True,
			message='API disponible',
			rate=str(rate) if rate is not None else None,
			date=str(date) if date is not None else None,
		)

	async def close(self) -> None:
		await self._client.aclose()
