from decimal import Decimal

from pydantic import BaseModel, Field


class FiatRateResponse(BaseModel):
	rate_value: Decimal = Field(..., description='Official VES per USD rate')
	as_of_date: str = Field(..., description='Publication date, d/m/yyyy')
	iso_date: str = Field(..., description='Publication date as returned upstream')
	source_label: str


class MarketAdResponse(BaseModel):
	counterparty_name: str
	counterparty_type: str
	is_verified: bool
	monthly_completion_rate: Decimal | None = None
	monthly_order_count: int | None = None
	unit_price: Decimal
	min_trade_amount: Decimal
	max_trade_amount: Decimal
	available_supply: Decimal
	payment_methods: list[str] = Field(default_factory=list)


class MarketRateResponse(BaseModel):
	average_price: Decimal = Field(..., description='Mean price of verified listings')
	min_price: Decimal
	max_price: Decimal
	ad_count: int
	ads: list[MarketAdResponse]
	filter_amount: Decimal | None = Field(None, description='Amount filter used, VES')
	pages_queried: int
	fiat: str
	source_label: str


class RatesStateResponse(BaseModel):
	fiat_rate: FiatRateResponse | None = None
	market: MarketRateResponse | None = None
	amount: str
	loading: bool
	refreshing: bool
	loading_market: bool
	recompute_phase: str
	error: str | None = None


class ConversionResponse(BaseModel):
	amount: Decimal = Field(..., description='Dollar amount converted')
	fiat_equivalent: Decimal = Field(..., description='Amount in VES at the official rate')
	crypto_units_needed: Decimal = Field(..., description='USDT to sell at the market average')
	rate_delta: Decimal = Field(..., description='Market average minus official rate')
	rate_delta_percent: Decimal

	class ConfigDict:
		json_schema_extra = {
			'example': {
				'amount': 100,
				'fiat_equivalent': 4000.00,
				'crypto_units_needed': 94.12,
				'rate_delta': 2.50,
				'rate_delta_percent': 6.25,
			}
		}


class HealthResponse(BaseModel):
	available: bool
	message: str
	rate: str | None = None
	date: str | None = None
