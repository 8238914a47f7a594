from db.models import REQUIRED_BOOT_TABLES
from db.repository import Repository
from db.session import SessionManager

__all__ = ["Repository", "SessionManager", "REQUIRED_BOOT_TABLES"]
