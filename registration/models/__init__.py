# Registration service models
from registration.models.account import Account
from registration.models.base import BaseModel

__all__ = [
    "Account",
    "BaseModel",
]
