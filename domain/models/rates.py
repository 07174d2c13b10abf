from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext
from enum import Enum

CENT = Decimal('0.01')


def _quantize_cents(value: Decimal, rounding: str) -> Decimal:
	# quantize needs room for every integer digit plus two decimals
	with localcontext() as ctx:
		ctx.prec = max(ctx.prec, value.adjusted() + 3)
		return value.quantize(CENT, rounding=rounding)


def round2(value: Decimal) -> Decimal:
	return _quantize_cents(value, ROUND_HALF_UP)


def truncate2(value: Decimal) -> Decimal:
	return _quantize_cents(value, ROUND_DOWN)


@dataclass(frozen=True)
class FiatRate:
	rate_value: Decimal
	as_of_date: str  # localized, d/m/yyyy
	iso_date: str
	source_label: str


class CounterpartyType(str, Enum):
	MERCHANT = 'merchant'
	OTHER = 'other'


@dataclass(frozen=True)
class MarketAd:
	counterparty_name: str
	counterparty_type: CounterpartyType
	is_verified: bool
	monthly_completion_rate: Decimal | None
	monthly_order_count: int | None
	unit_price: Decimal
	min_trade_amount: Decimal
	max_trade_amount: Decimal
	available_supply: Decimal
	payment_methods: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketAggregate:
	average_price: Decimal
	min_price: Decimal
	max_price: Decimal
	ad_count: int
	ads: tuple[MarketAd, ...]  # marketplace arrival order
	filter_amount: Decimal | None
	pages_queried: int
	fiat: str = 'VES'
	source_label: str = 'Binance P2P'


@dataclass(frozen=True)
class ConversionResult:
	fiat_equivalent: Decimal
	crypto_units_needed: Decimal
	rate_delta: Decimal
	rate_delta_percent: Decimal


@dataclass(frozen=True)
class HealthStatus:
	available: bool
	message: str
	rate: str | None = None
	date: str | None = None
