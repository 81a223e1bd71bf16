from ledgerapi.models.base import Base
from ledgerapi.models.user import User, UserRole
from ledgerapi.models.ledger import (
    Coin,
    CoinAction,
    CoinHistory,
    CoinStatus,
    Transaction,
    TransactionType,
    Wallet,
)
from ledgerapi.models.rewards import RewardClaim, RewardEvent
from ledgerapi.models.marketplace import (
    AdvertisingPackage,
    EconomyConfig,
    Notification,
    NotificationType,
    Order,
    OrderStatus,
    Product,
    ProductAd,
    Store,
)
