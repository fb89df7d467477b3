"""
Configuration constants and environment setup.
"""

import os
import re
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("PTO_IMPORT_DB_PATH", PROJECT_ROOT / "data" / "db" / "pto-import.db")
)

# =============================================================================
# SHEET LAYOUT (1-indexed rows/columns)
# =============================================================================

# Calendar grid: three column groups of months, four row groups
COL_STARTS = [2, 10, 18]
ROW_GROUP_STARTS = [4, 13, 22, 31]
DAY1_SCAN_RANGE = 3  # Rows above/below the expected position to look for day 1

LEGEND_COL = 26  # Z
LEGEND_SCAN_MAX_ROW = 30
LEGEND_MAX_ENTRIES = 10

# PTO Calculation section
PTO_CALC_START_ROWS = [42, 43]  # "January" is expected in column B on one of these
PTO_CALC_LABEL_COL = 2  # B
PTO_CALC_CARRYOVER_COL = 12  # L
PTO_CALC_USED_HOURS_COL = 19  # S
PTO_CALC_RATE_COL = 6  # F, read on the December row

# Monthly acknowledgement checkmarks on the PTO Calc rows
EMP_ACK_COL = 24  # X
ADMIN_ACK_COL = 25  # Y
ACK_MARK = "✓"

# Employee header
YEAR_CELL = "B2"
HIRE_DATE_CELL = "R2"
HIRE_DATE_SCAN_COLS = range(18, 25)  # R..X on row 2
HIRE_DATE_FORMATS = ["%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%B %d, %Y", "%b %d, %Y", "%d-%b-%Y"]

# =============================================================================
# LEGEND & COLORS
# =============================================================================

LEGEND_LABEL_TO_PTO_TYPE = {
    "Sick": "Sick",
    "Full PTO": "PTO",
    "Partial PTO": "PTO",
    "Planned PTO": "PTO",
    "Bereavement": "Bereavement",
    "Jury Duty": "Jury Duty",
}
PARTIAL_PTO_LABEL = "Partial PTO"

# Standard Office 2010 theme palette, used when the workbook theme is unreadable
DEFAULT_OFFICE_THEME = {
    0: "FFFFFFFF",
    1: "FF000000",
    2: "FFEEECE1",
    3: "FF1F497D",
    4: "FF4F81BD",
    5: "FFC0504D",
    6: "FF9BBB59",
    7: "FF8064A2",
    8: "FF4BACC6",
    9: "FFF79646",
    10: "FF0000FF",
    11: "FF800080",
}

# Theme XML lists dk1, lt1, dk2, lt2 first; spreadsheet theme indices swap each pair
THEME_XML_ORDER_TO_INDEX = [1, 0, 3, 2, 4, 5, 6, 7, 8, 9, 10, 11]

NEUTRAL_FILLS = {"FFFFFFFF", "FF000000"}

MAX_COLOR_DISTANCE = 100  # Euclidean RGB distance for approximate matches
MIN_CHROMA_FOR_APPROX = 40  # Greys never approximate-match a legend color

# =============================================================================
# RECONCILIATION RULES
# =============================================================================

PTO_TYPES = ("PTO", "Sick", "Bereavement", "Jury Duty")

# PTO types counted by the "PTO hours per Month" column (S)
COLUMN_S_TRACKED_TYPES = frozenset({"PTO"})

ANNUAL_SICK_ALLOWANCE = 24.0
DEFAULT_DAY_HOURS = 8.0
MAX_SINGLE_ENTRY_HOURS = 24.0
MAX_PARTIAL_HOURS = 8.0
MAX_WORKED_HOURS = 12.0

# Joint weekend/partial inference
ASSUMED_CREDIT_HOURS = 8.0
ASSUMED_PARTIAL_HOURS = 4.0
MIN_CREDIT_HOURS = 0.5

FULL_DAY_GAP_HOURS = 7.9
MISMATCH_TOLERANCE = 0.1
BEREAVEMENT_GAP_TOLERANCE = 0.5
AGREEMENT_TOLERANCE = 0.01

# Monthly acknowledgements are clean when calendar and column S agree this closely
ACK_TOLERANCE = 0.1

# =============================================================================
# PTO ACCRUAL
# =============================================================================

# One tier per July 1 anniversary bump, capped at the last tier
PTO_EARNING_SCHEDULE = [
    {"tier": 0, "daily_rate": 0.65, "annual_hours": 168},
    {"tier": 1, "daily_rate": 0.68, "annual_hours": 176},
    {"tier": 2, "daily_rate": 0.71, "annual_hours": 184},
    {"tier": 3, "daily_rate": 0.74, "annual_hours": 192},
    {"tier": 4, "daily_rate": 0.77, "annual_hours": 200},
    {"tier": 5, "daily_rate": 0.80, "annual_hours": 208},
    {"tier": 6, "daily_rate": 0.83, "annual_hours": 216},
    {"tier": 7, "daily_rate": 0.86, "annual_hours": 224},
    {"tier": 8, "daily_rate": 0.89, "annual_hours": 232},
    {"tier": 9, "daily_rate": 0.92, "annual_hours": 240},
]
DEFAULT_PTO_RATE = 0.65
PTO_RATE_TOLERANCE = 0.005
BUMP_MONTH = 7  # Rate bumps take effect July 1

# Notes hinting that a month was deliberately over-colored (weekend make-up work)
OVERCOLOR_NOTE_KEYWORDS = re.compile(r"worked|make\s*up|makeup|offset", re.IGNORECASE)

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_UPLOAD_SIZE_MB = int(os.environ.get("MAX_UPLOAD_SIZE_MB", "20"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
API_VERSION = "1.0.0"
