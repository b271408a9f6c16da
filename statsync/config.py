from __future__ import annotations

import os

from dotenv import load_dotenv

# Load env before anything else
load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Fernet key used for every secret stored in integration_credentials
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "")

# Provider whose integrations the scheduler drives
SYNC_PROVIDER = os.getenv("SYNC_PROVIDER", "presto")

# Dotted "module:attr" path to the sync engine the scheduler calls into
SYNC_ENGINE = os.getenv("SYNC_ENGINE", "")

# Scheduler cadence (crontab syntax)
FULL_SYNC_CRON = os.getenv("FULL_SYNC_CRON", "0 */4 * * *")  # every 4 hours
LIVE_SYNC_CRON = os.getenv("LIVE_SYNC_CRON", "*/2 * * * *")  # every 2 minutes
SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "UTC")

# Credential lifecycle
MAX_REFRESH_ERRORS = int(os.getenv("MAX_REFRESH_ERRORS", "5"))
TOKEN_REFRESH_BUFFER_MINUTES = int(os.getenv("TOKEN_REFRESH_BUFFER_MINUTES", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
