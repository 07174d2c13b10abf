import logging

from application.services import RatesController
from config.settings import get_settings
from infrastructure.providers import BCVRateProvider, BinanceP2PAggregator

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for application-wide singleton dependencies."""

	controller: RatesController | None = None


deps = AppDependencies()


def init_dependencies() -> None:
	"""Initialize all singleton dependencies. Called at app startup."""
	logger.info('Initializing dependencies...')
	settings = get_settings()

	fiat_provider = BCVRateProvider(
		url=settings.FIAT_RATE_URL,
		timeout=settings.FIAT_RATE_TIMEOUT,
		health_timeout=settings.HEALTH_CHECK_TIMEOUT,
	)
	aggregator = BinanceP2PAggregator(
		url=settings.MARKET_SEARCH_URL,
		asset=settings.ASSET,
		fiat=settings.FIAT,
		trade_type=settings.TRADE_TYPE,
		timeout=settings.MARKET_TIMEOUT,
		max_pages=settings.MAX_PAGES,
		page_delay=settings.PAGE_DELAY_SECONDS,
	)
	deps.controller = RatesController(
		fiat_provider=fiat_provider,
		aggregator=aggregator,
		debounce_seconds=settings.DEBOUNCE_SECONDS,
		min_required_ads=settings.MIN_REQUIRED_ADS,
		page_size=settings.PAGE_SIZE,
	)
	logger.info('Dependencies initialized')


async def bootstrap() -> None:
	"""Initial rate load. Called after init_dependencies() at startup."""
	logger.info('Loading initial rates...')
	controller = get_controller()
	state = await controller.load_rates()
	if state.error:
		logger.warning(f'Initial load incomplete: {state.error}')
	logger.info('Bootstrap complete')


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.controller:
		await deps.controller.aclose()
		deps.controller = None

	logger.info('Cleanup complete')


def get_controller() -> RatesController:
	if deps.controller is None:
		raise RuntimeError('Rates controller not initialized')
	return deps.controller
