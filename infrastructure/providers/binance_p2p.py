import asyncio
import logging
from decimal import Decimal

import httpx
from pydantic import ValidationError

from domain.exceptions.rates import (
	AggregationError,
	AggregationReason,
	ConnectivityError,
	HttpError,
	RateError,
	RequestTimeoutError,
)
from domain.models.rates import MarketAd, MarketAggregate, truncate2
from infrastructure.providers.schemas import ListingPayload, SearchResponsePayload

logger = logging.getLogger(__name__)


class _StopPaging(Exception):
	"""A page could not be used; paging ends with whatever was collected."""


class BinanceP2PAggregator:
	"""Sequential paginated search over verified P2P sell listings."""

	DEFAULT_URL = 'https://p2p.binance.com/bapi/c2c/v2/friendly/c2c/adv/search'
	SOURCE_LABEL = 'Binance P2P'

	def __init__(
		self,
		url: str = DEFAULT_URL,
		client: httpx.AsyncClient | None = None,
		asset: str = 'USDT',
		fiat: str = 'VES',
		trade_type: str = 'SELL',
		timeout: float = 15.0,
		max_pages: int = 100,
		page_delay: float = 0.1,
	):
		self.url = url
		self.asset = asset
		self.fiat = fiat
		self.trade_type = trade_type
		self.timeout = timeout
		self.max_pages = max_pages
		self.page_delay = page_delay
		self._client = client or httpx.AsyncClient(
			headers={'Accept': 'application/json', 'Content-Type': 'application/json'},
		)

	def _build_payload(self, page: int, rows: int, filter_amount: Decimal | None) -> dict:
		payload = {
			'asset': self.asset,
			'fiat': self.fiat,
			'merchantCheck': True,
			'page': page,
			'payTypes': [],
			'publisherType': None,
			'rows': rows,
			'tradeType': self.trade_type,
		}
		if filter_amount is not None and filter_amount.is_finite() and filter_amount > 0:
			payload['transAmount'] = float(truncate2(filter_amount))
		return payload

	async def _fetch_page(self, page: int, rows: int, filter_amount: Decimal | None) -> list[ListingPayload]:
		payload = self._build_payload(page, rows, filter_amount)
		try:
			response = await self._client.post(self.url, json=payload, timeout=self.timeout)
			response.raise_for_status()
		except httpx.TimeoutException as e:
			raise RequestTimeoutError(
				f'Binance page {page} timed out after {self.timeout}s',
				user_message='Tiempo de espera agotado al conectar con Binance.',
			) from e
		except httpx.HTTPStatusError as e:
			raise HttpError(e.response.status_code, f'Binance page {page} HTTP error {e.response.status_code}') from e
		except httpx.RequestError as e:
			raise ConnectivityError(
				f'Binance page {page} request failed: {e.__class__.__name__}',
				user_message='No se pudo conectar con Binance.',
			) from e

		text = response.text
		if not text or not text.strip():
			raise _StopPaging(f'empty body on page {page}')

		try:
			body = SearchResponsePayload.model_validate_json(text)
		except ValidationError as e:
			raise _StopPaging(f'unparseable body on page {page}: {e.error_count()} errors') from e

		if not body.success or not body.data:
			raise _StopPaging(f'no listings on page {page} (success={body.success}, code={body.code})')

		return body.data

	async def search(
		self,
		filter_amount: Decimal | None = None,
		min_required_ads: int = 5,
		page_size: int = 20,
	) -> MarketAggregate:
		"""
		Collect merchant listings page by page until ``min_required_ads`` are
		gathered, a page comes back unusable, or ``max_pages`` is reached.

		Transport and HTTP failures on the first page propagate. Any later page
		failure ends paging with the listings already collected.
		"""
		verified: list[ListingPayload] = []
		pages_queried = 0
		page = 1

		while page <= self.max_pages:
			pages_queried = page
			try:
				listings = await self._fetch_page(page, page_size, filter_amount)
			except _StopPaging as e:
				logger.warning(f'Stopped paging: {e}')
				break
			except RateError as e:
				if page == 1:
					logger.error(f'Binance search failed on first page: {e}')
					raise
				logger.warning(f'Stopped paging after page {page - 1}: {e}')
				break

			page_verified = [listing for listing in listings if listing.is_merchant]
			verified.extend(page_verified)
			logger.debug(f'Page {page}: {len(listings)} listings, {len(page_verified)} verified')

			if len(verified) >= min_required_ads:
				logger.debug(f'Enough listings: {len(verified)} (minimum {min_required_ads})')
				break

			if page >= self.max_pages:
				break
			page += 1
			await asyncio.sleep(self.page_delay)

		if not verified:
			raise AggregationError(AggregationReason.NO_VERIFIED_ADS)

		if len(verified) < min_required_ads:
			logger.warning(f'Only {len(verified)} verified listings (expected {min_required_ads})')

		ads = [listing.to_market_ad() for listing in verified]
		aggregate = self._aggregate(ads, filter_amount, pages_queried)
		logger.info(
			f'Binance search done: {aggregate.ad_count} valid prices from {pages_queried} page(s), '
			f'avg={aggregate.average_price} filter={filter_amount}'
		)
		return aggregate

	def _aggregate(self, ads: list[MarketAd], filter_amount: Decimal | None, pages_queried: int) -> MarketAggregate:
		prices = [ad.unit_price for ad in ads if ad.unit_price > 0]
		if not prices:
			raise AggregationError(AggregationReason.NO_VALID_PRICES)

		average = sum(prices, Decimal('0')) / len(prices)

		# Truncation is monotonic, so min <= average <= max survives it.
		return MarketAggregate(
			average_price=truncate2(average),
			min_price=truncate2(min(prices)),
			max_price=truncate2(max(prices)),
			ad_count=len(prices),
			ads=tuple(ads),
			filter_amount=filter_amount,
			pages_queried=pages_queried,
			fiat=self.fiat,
			source_label=self.SOURCE_LABEL,
		)

	async def close(self) -> None:
		await self._client.aclose()
