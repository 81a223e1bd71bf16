from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            },
            headers=headers,
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class RateLimitError(BaseAPIException):
    """Rate limiting errors"""
    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_001",
            message=message,
            details=details
        )

class BusinessLogicError(BaseAPIException):
    """Business logic errors"""
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

# ---------------------------------------------------------------------------
# Ledger / marketplace errors
# ---------------------------------------------------------------------------

class InsufficientFundsError(BaseAPIException):
    """Fewer ACTIVE coins than requested"""
    def __init__(self, message: str = "Insufficient funds", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            error_code="FUNDS_001",
            message=message,
            details=details
        )

class OutOfStockError(BaseAPIException):
    """Product stock exhausted"""
    def __init__(self, message: str = "Out of stock", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="STOCK_001",
            message=message,
            details=details
        )

class SelfPurchaseError(BusinessLogicError):
    """Buyer owns the store selling the product"""
    def __init__(self, message: str = "Cannot purchase your own product", details: Optional[Dict] = None):
        super().__init__(error_code="ORDER_001", message=message, details=details)

class InvalidDeliveryCodeError(BusinessLogicError):
    """Delivery code mismatch or order not pending"""
    def __init__(self, message: str = "Invalid delivery code", details: Optional[Dict] = None):
        super().__init__(error_code="ORDER_002", message=message, details=details)

class InsufficientTreasuryBudgetError(BusinessLogicError):
    """Event budget exceeds the treasury's uncommitted balance"""
    def __init__(self, message: str = "Insufficient treasury budget", details: Optional[Dict] = None):
        super().__init__(error_code="TREASURY_001", message=message, details=details)

class EventInactiveError(BusinessLogicError):
    """Reward event is inactive"""
    def __init__(self, message: str = "Reward event is not active", details: Optional[Dict] = None):
        super().__init__(error_code="REWARD_001", message=message, details=details)

class BudgetExhaustedError(BusinessLogicError):
    """Reward event can no longer pay out a full reward"""
    def __init__(self, message: str = "Reward event budget exhausted", details: Optional[Dict] = None):
        super().__init__(error_code="REWARD_002", message=message, details=details)

class TicketExpiredError(BaseAPIException):
    """Claim ticket signature invalid or outside its validity window"""
    def __init__(self, message: str = "Claim ticket expired, scan the current code", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="REWARD_003",
            message=message,
            details=details
        )

class AlreadyClaimedError(BaseAPIException):
    """Reward already claimed by this user"""
    def __init__(self, message: str = "Reward already claimed for this event", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="REWARD_004",
            message=message,
            details=details
        )
