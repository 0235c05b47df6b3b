# juryportal/operations/health_monitor.py
# Liveness check: database reachability and audit log directory

import os
import shutil
from typing import Dict

from sqlalchemy import text

from juryportal import db

MIN_FREE_DISK_GB = float(os.getenv("MIN_FREE_DISK_GB", "0.1"))


def _check_db() -> Dict:
    try:
        db.session.execute(text("SELECT 1"))
        return {"ok": True, "detail": "database ok"}
    except Exception as e:
        db.session.rollback()
        return {"ok": False, "error": str(e)}


def _check_disk(path) -> Dict:
    total, used, free = shutil.disk_usage(path if os.path.isdir(path) else ".")
    free_gb = free / (1024**3)
    return {"ok": free_gb >= MIN_FREE_DISK_GB, "free_gb": round(free_gb, 2), "min_required_gb": MIN_FREE_DISK_GB}


def check_health(audit_log_dir=".") -> Dict:
    """Aggregate overall service health."""
    database = _check_db()
    disk = _check_disk(audit_log_dir)
    return {"db": database, "disk": disk, "overall_ok": database["ok"] and disk["ok"]}
