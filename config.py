"""
Configuration settings for the finance tracker.

Values come from the process environment, optionally seeded from a local
``.env`` file. See ``.env.example`` for the full list.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# --- Telegram ---
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")

# --- Data files ---
# Console autosave target when no file was imported during the session.
DATA_FILE = os.getenv("DATA_FILE", "transactions.txt")
# Trend charts are written here under fixed names.
CHART_DIR = Path(os.getenv("CHART_DIR", "."))

# --- Remote storage ---
# When set, data files are read from / written to this bucket instead of disk.
S3_BUCKET = os.getenv("S3_BUCKET")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- Forecast ---
FORECAST_MONTHS = int(os.getenv("FORECAST_MONTHS", "3"))
