"""Pydantic models for records, configuration and the HTTP API."""

# Configuration and catalog models
from .service import (
    ServiceType,
    ServiceDefinition,
    CompanySettings,
    TokenConfig,
    ClockConfig,
    RedemptionPolicy,
    CafeConfig,
    progress_total_for,
)

# Purchase models
from .purchase import (
    PurchaseStatus,
    PurchaseRecord,
)

# Check-in models
from .check_in import (
    CheckInState,
    CheckInRecord,
    ElapsedSnapshot,
)

# User models
from .user import (
    UserRole,
    UserRecord,
    STAFF_ROLES,
)

# API request models
from .api_request import (
    SellRequest,
    CodeRequest,
    CreateUserRequest,
    AdvanceTimeRequest,
    SetTimeRequest,
    FailWritesRequest,
)

# API response models
from .api_response import (
    ErrorResponse,
    SaleResponse,
    PurchaseListResponse,
    ValidateResponse,
    ScanResponse,
    RedeemResponse,
    CheckInResponse,
    CheckOutResponse,
    CheckInListResponse,
    TimeResponse,
    UserResponse,
    ResetResponse,
    StatusResponse,
)

__all__ = [
    # Configuration
    "ServiceType",
    "ServiceDefinition",
    "CompanySettings",
    "TokenConfig",
    "ClockConfig",
    "RedemptionPolicy",
    "CafeConfig",
    "progress_total_for",
    # Purchase
    "PurchaseStatus",
    "PurchaseRecord",
    # Check-in
    "CheckInState",
    "CheckInRecord",
    "ElapsedSnapshot",
    # User
    "UserRole",
    "UserRecord",
    "STAFF_ROLES",
    # API requests
    "SellRequest",
    "CodeRequest",
    "CreateUserRequest",
    "AdvanceTimeRequest",
    "SetTimeRequest",
    "FailWritesRequest",
    # API responses
    "ErrorResponse",
    "SaleResponse",
    "PurchaseListResponse",
    "ValidateResponse",
    "ScanResponse",
    "RedeemResponse",
    "CheckInResponse",
    "CheckOutResponse",
    "CheckInListResponse",
    "TimeResponse",
    "UserResponse",
    "ResetResponse",
    "StatusResponse",
]
