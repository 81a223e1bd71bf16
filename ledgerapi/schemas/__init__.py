from .user import User
from .ledger import TransactionResponse, WalletResponse
from .rewards import RewardEventResponse
from .orders import OrderResponse
