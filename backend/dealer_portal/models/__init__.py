"""
Models module initialization
"""
from dealer_portal.models.dealership import Dealership
from dealer_portal.models.user import User
from dealer_portal.models.client_account import ClientAccount, ClientAccountStatus

__all__ = [
    "Dealership",
    "User",
    "ClientAccount",
    "ClientAccountStatus",
]
