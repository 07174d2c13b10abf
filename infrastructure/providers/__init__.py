from .bcv import BCVRateProvider
from .binance_p2p import BinanceP2PAggregator

__all__ = ['BCVRateProvider', 'BinanceP2PAggregator']
