from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	FIAT_RATE_URL: str = 'https://bcv-api.rafnixg.dev/rates/'
	MARKET_SEARCH_URL: str = 'https://p2p.binance.com/bapi/c2c/v2/friendly/c2c/adv/search'

	# Marketplace query
	ASSET: str = 'USDT'
	FIAT: str = 'VES'
	TRADE_TYPE: str = 'SELL'
	PAGE_SIZE: int = 20
	MAX_PAGES: int = 100
	PAGE_DELAY_SECONDS: float = 0.1
	MIN_REQUIRED_ADS: int = 5

	# Timeouts (seconds)
	FIAT_RATE_TIMEOUT: float = 10.0
	HEALTH_CHECK_TIMEOUT: float = 5.0
	MARKET_TIMEOUT: float = 15.0

	DEBOUNCE_SECONDS: float = 0.5

	# Logging
	LOG_LEVEL: str = 'INFO'
	LOG_JSON: bool = False
	LOG_DIRECTORY: str | None = None

	# Application
	APP_NAME: str = 'BCV vs P2P Calculator API'
	DEBUG: bool = True

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


@lru_cache
def get_settings() -> Settings:
	return Settings()
