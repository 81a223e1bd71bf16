# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .wallet_repository import WalletRepository
from .coin_repository import CoinRepository
from .transaction_repository import TransactionRepository
from .reward_event_repository import RewardEventRepository
from .product_repository import ProductRepository
from .order_repository import OrderRepository
from .ad_repository import AdRepository
from .economy_config_repository import EconomyConfigRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "WalletRepository",
    "CoinRepository",
    "TransactionRepository",
    "RewardEventRepository",
    "ProductRepository",
    "OrderRepository",
    "AdRepository",
    "EconomyConfigRepository",
]
