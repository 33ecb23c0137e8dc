from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.leave_management.leave_management.core.logging_config import configure_logging
from src.leave_management.leave_management.database.bootstrap import DEMO_STAFF, ensure_demo_users


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FORMAT", "text"))
    db_config = dict(settings.DB_CONFIG)
    domain = getattr(settings, "ALLOWED_EMAIL_DOMAIN", "nitgoa.ac.in")

    ensure_demo_users(db_config, email_domain=domain)

    print(
        "OK: Seeded staff accounts -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )
    for name, local_part, role in DEMO_STAFF:
        print(f"  {role:<10} {local_part}@{domain} ({name})")


if __name__ == "__main__":
    main()
