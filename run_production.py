#!/usr/bin/env python
"""
PressPlan - Production Server Launcher

This script starts the production server using Waitress (Windows-compatible).
For Linux/Unix servers, you can also use Gunicorn.

Usage:
    python run_production.py

Environment Variables (set in .env file):
    - HOST: Server host (default: 0.0.0.0)
    - PORT: Server port (default: 5000)
    - DAY_SHIFT_START / DAY_SHIFT_END / NIGHT_SHIFT_START / NIGHT_SHIFT_END: shift clocks
    - SHIFT_TIMEZONE: zone the shift clocks are read in (default: UTC)
    - PIPELINE_SETTINGS_FILE: JSON tracking pipeline (default: built-in pipeline)
    - DATA_DIR: input spreadsheets for POST /api/schedule/data
"""

import os
import sys

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'backend'))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Fail fast on bad shift clocks or timezone instead of on the first request
from settings import ShiftSettings

try:
    ShiftSettings.from_env()
except ValueError as e:
    print("=" * 60)
    print(f"ERROR: Invalid shift settings: {e}")
    print("Please check the shift variables in your .env file.")
    print("=" * 60)
    sys.exit(1)

pipeline_file = os.environ.get('PIPELINE_SETTINGS_FILE')
if pipeline_file and not os.path.exists(pipeline_file):
    print("=" * 60)
    print(f"WARNING: PIPELINE_SETTINGS_FILE not found: {pipeline_file}")
    print("Requests without explicit settings will fail until it exists.")
    print("=" * 60)
    # Don't exit, but warn

# Set production environment
os.environ['FLASK_ENV'] = 'production'
os.environ['FLASK_DEBUG'] = 'false'

# Import and run
from app import app, run_production

if __name__ == '__main__':
    run_production()
