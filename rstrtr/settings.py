"""
This module contains the default configuration settings for rstrtr.
It defines the control file location, supervision timings and logging options.
Every upper-case name here can be overridden from the environment or a `.env` file.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

#* --- Control Channel ---
DEFAULT_CONTROL_PATH = pathlib.Path(os.getenv("RSTRTR_CONTROL_PATH", "./.rstrtr"))
CONTROL_FILE_PREFIX = "rstrtr"
CONTROL_FILE_CONTENT = "\n"

#* --- Supervisor Settings ---
POLL_INTERVAL_SECONDS = float(os.getenv("RSTRTR_POLL_INTERVAL", "0.05"))
WATCH_DEBOUNCE_SECONDS = float(os.getenv("RSTRTR_DEBOUNCE", "0.1"))
# Seconds to wait for a terminated child before force-killing it. 0 disables the wait.
TERMINATE_TIMEOUT_SECONDS = float(os.getenv("RSTRTR_TERMINATE_TIMEOUT", "5.0"))
PROCESS_TITLE = "rstrtr - Supervisor"

#* --- Logging ---
VERBOSE_LOGGING = os.getenv("RSTRTR_VERBOSE", "False").lower() in ('true', '1', 't')
LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'
