"""Defaults for the task feed, board sizes and task-type weighting."""

from __future__ import annotations

import os

# Public CSV feed for tasks (Google Sheets, sheet SNAKESANDLADDERS)
TASKS_CSV_URL: str = os.environ.get(
    "SNL_TASKS_CSV_URL",
    "https://docs.google.com/spreadsheets/d/e/2PACX-1vTPK3XUF7vYVA80h9jXKXmapZmrTotD-D3I5RHHcWlwKzbfAWiaCWspTjiUcCezA274Il2JhQyco-kz/pub?output=csv",
)

# Edit/view link for the task bank
TASKS_SHEET_URL = (
    "https://docs.google.com/spreadsheets/d/1ITLDp3Bp_ohKnw-Zg4gq4JJ-pIAnFMCEp0Rumyx3zdM/edit"
)

# Target mix per session (rough weights); unknown types weigh 1
DEFAULT_TYPE_WEIGHTS: dict[str, float] = {
    "speaking": 3,
    "error_correction": 2,
    "translate_ca_en": 2,
    "translate_en_ca": 2,
}

DEFAULT_BOARD_SIZE = 100
MIN_BOARD_SIZE = 40
MAX_BOARD_SIZE = 100
BOARD_SIZES: tuple[int, ...] = (40, 50, 60, 70, 80, 90, 100)
BOARD_COLUMNS = 10

DEFAULT_NUM_PLAYERS = 2
MIN_PLAYERS = 1
MAX_PLAYERS = 6
MAX_NAME_LENGTH = 20

HISTORY_CAPACITY = 50
RECENT_TYPE_WINDOW = 4
RECENT_ID_WINDOW = 10

STORAGE_KEY = "snl_state_v2"
