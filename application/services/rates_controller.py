import asyncio
import logging
from decimal import Decimal

from application.services.conversion_service import derive
from application.services.recompute_scheduler import RecomputeScheduler, parse_amount
from application.services.state import RatesState, StateListener
from domain.exceptions.rates import RateError
from domain.models.rates import ConversionResult, HealthStatus
from infrastructure.providers.bcv import BCVRateProvider
from infrastructure.providers.binance_p2p import BinanceP2PAggregator

logger = logging.getLogger(__name__)


class RatesController:
	def __init__(
		self,
		fiat_provider: BCVRateProvider,
		aggregator: BinanceP2PAggregator,
		debounce_seconds: float = 0.5,
		min_required_ads: int = 5,
		page_size: int = 20,
	):
		self.fiat_provider = fiat_provider
		self.aggregator = aggregator
		self.min_required_ads = min_required_ads
		self.page_size = page_size
		self.state = RatesState()
		self.scheduler = RecomputeScheduler(
			aggregator=aggregator,
			state=self.state,
			debounce_seconds=debounce_seconds,
			min_required_ads=min_required_ads,
			page_size=page_size,
		)

	def subscribe(self, listener: StateListener):
		return self.state.subscribe(listener)

	async def load_rates(self) -> RatesState:
		"""
		Fetch the reference rate and the unfiltered market rate independently.

		Each success replaces its own snapshot; a failure leaves the previous
		one in place and the first failure's message becomes ``state.error``.
		"""
		self.state.update(loading=True, error=None)
		ticket = self.state.begin_market_fetch()

		fiat_result, market_result = await asyncio.gather(
			self.fiat_provider.fetch_rate(),
			self.aggregator.search(None, self.min_required_ads, self.page_size),
			return_exceptions=True,
		)

		errors: list[RateError] = []
		try:
			for label, result in (('BCV', fiat_result), ('Binance P2P', market_result)):
				if isinstance(result, RateError):
					logger.error(f'Failed to load {label} rate: {result}')
					errors.append(result)
				elif isinstance(result, BaseException):
					raise result

			if not isinstance(fiat_result, BaseException):
				self.state.update(fiat_rate=fiat_result)
				self.scheduler.rearm()
			if not isinstance(market_result, BaseException):
				self.state.commit_market(market_result, ticket)
		finally:
			self.state.update(
				loading=False,
				refreshing=False,
				error=errors[0].user_message if errors else None,
			)
		return self.state

	async def refresh(self) -> RatesState:
		self.state.update(refreshing=True)
		return await self.load_rates()

	def submit_amount(self, text: str) -> bool:
		return self.scheduler.submit(text)

	def current_amount(self) -> Decimal:
		return parse_amount(self.state.amount) or Decimal('0')

	def conversion(self, amount: Decimal | None = None) -> ConversionResult:
		if amount is None:
			amount = self.current_amount()
		return derive(amount, self.state.fiat_rate, self.state.market)

	async def check_health(self) -> HealthStatus:
		return await self.fiat_provider.check_health()

	async def aclose(self) -> None:
		self.scheduler.close()
		await self.scheduler.drain()
		await self.fiat_provider.close()
		await self.aggregator.close()
