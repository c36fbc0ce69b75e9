#!/usr/bin/env python3
"""
SWGOH value parsing helpers

Defensive coercion for the numbers found in exported game data (scores,
timestamps, counters), which arrive as strings, ints or not at all, and
JSON document parsing for files that may carry a text header.
"""

import json
import logging
import re
from typing import Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r'^\s*([-+]?\d+)')


def parse_int(value: Any) -> Optional[int]:
    """
    Parse an integer from an external value without raising.

    Accepts ints, floats and strings with a leading integer ("15", " 7 ",
    "1700000000000"). Anything else (None, "", "abc", booleans, lists)
    yields None.

    Args:
        value: Raw value from a JSON document

    Returns:
        The parsed integer, or None if the value is absent or unparseable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def parse_json_document(content: str) -> Any:
    """
    Parse a JSON document, skipping any text header before the first '{'.

    Files written with the CLI --output flag start with a banner
    ("TWLOGS Data:\\n=====") before the JSON body.

    Raises:
        json.JSONDecodeError: If the remaining content is not valid JSON
    """
    json_start = content.find('{')
    if json_start > 0:
        content = content[json_start:]
    return json.loads(content)


def load_json_file(file_path) -> Any:
    """
    Read and parse a JSON file.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not UTF-8 text
        json.JSONDecodeError: If the file is not valid JSON
    """
    with open(Path(file_path), 'r', encoding='utf-8') as f:
        content = f.read()
    return parse_json_document(content)
