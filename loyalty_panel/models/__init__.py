from .customer_card import CustomerCard, Stamp
from .location import Location
from .loyalty_program import MAX_STAMPS_REQUIRED, MIN_STAMPS_REQUIRED, LoyaltyProgram
from .push_campaign import PreviewCancelFailure, PushCampaign
from .tenant import Tenant, TenantBillingInfo, TenantStatus
from .user import User, UserRoleRecord

__all__ = [
    "CustomerCard",
    "Stamp",
    "Location",
    "LoyaltyProgram",
    "MIN_STAMPS_REQUIRED",
    "MAX_STAMPS_REQUIRED",
    "PreviewCancelFailure",
    "PushCampaign",
    "Tenant",
    "TenantBillingInfo",
    "TenantStatus",
    "User",
    "UserRoleRecord",
]
