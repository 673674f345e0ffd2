"""Append-only audit trail of sensitive actions, one file per month."""
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Union

from parish.core.config import LOGS_DIR

logger = logging.getLogger("parish.audit")

_write_lock = threading.Lock()


def write_audit_log(user_name: str, user_role: Union[str, Enum], action: str, details: str = ""):
    role = user_role.value if isinstance(user_role, Enum) else user_role
    now = datetime.now()
    line = f"{now.strftime('%Y-%m-%d %H:%M:%S')} | {role} | {user_name} | {action} | {details}\n"
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    with _write_lock:
        with open(LOGS_DIR / f"audit_{now.strftime('%Y_%m')}.log", "a", encoding="utf-8") as f:
            f.write(line)
    logger.info("%s by %s (%s): %s", action, user_name, role, details)
