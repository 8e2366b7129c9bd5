from app.models.user import User
from app.models.pack import Pack
from app.models.order import Order, OrderItem, OrderStatus
from app.models.code_record import CodeRecord
from app.models.payment import Payment
from app.models.audit_log import AuditLog
from app.models.failed_job import FailedJob
from app.models.user_message import UserMessage

__all__ = [
    "User",
    "Pack",
    "Order",
    "OrderItem",
    "OrderStatus",
    "CodeRecord",
    "Payment",
    "AuditLog",
    "FailedJob",
    "UserMessage",
]
