from enum import Enum

# ------------------- ENUMS ------------------------------------------ #
class UserRole(str, Enum):
    user = "user"
    driver = "driver"
    admin = "admin"


class SmsStatus(str, Enum):
    pending = "pending"
    success = "success"
    failed = "failed"
