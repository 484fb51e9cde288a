from models.application import LoanApplication
from models.receipt import ORCRReceipt
from models.user import User

__all__ = [
    "LoanApplication",
    "ORCRReceipt",
    "User",
]
