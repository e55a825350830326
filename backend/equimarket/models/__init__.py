"""SQLAlchemy models for Equimarket.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from equimarket.models.horse import HorseListing
from equimarket.models.seller import Seller
from equimarket.models.spotlight import Spotlight
from equimarket.models.transaction import Transaction
from equimarket.models.user import User

__all__ = [
    "HorseListing",
    "Seller",
    "Spotlight",
    "Transaction",
    "User",
]
