#!/usr/bin/env python3
"""
SWGOH Data Context

This module handles loading SWGOH data (Territory Battle snapshots and
Territory War event logs), running it through the aggregation pipelines and
exposing ranked per-player reports. Each load replaces the previous one
wholesale; a failed load leaves no partial data behind.
"""

import logging
from datetime import date as Date
from typing import Any, Dict, List, Optional

import requests

from swgoh_log_source import LogSource
from swgoh_parsing import load_json_file
from swgoh_ranking import DEFAULT_SORT_KEY, finalize
from swgoh_tb_stats import TBSnapshot, aggregate_snapshot
from swgoh_tw_stats import TWLoadSession, TWReport, parse_tw_results

logger = logging.getLogger(__name__)


def build_title(date: Optional[str]) -> str:
    """
    Build a display title from a YYYYMMDD date string.

    "20250706" -> "Territory War: July 6, 2025"
    """
    if not date or len(date) != 8 or not date.isdigit():
        return "Territory War Dashboard"
    try:
        day = Date(int(date[:4]), int(date[4:6]), int(date[6:]))
    except ValueError:
        return "Territory War Dashboard"
    return f"Territory War: {day.strftime('%B')} {day.day}, {day.year}"


def format_date(date: str) -> str:
    """Format "20250706" as "2025-07-06"."""
    if not date or len(date) != 8:
        return date
    return f"{date[:4]}-{date[4:6]}-{date[6:]}"


class SWGOHDataContext:
    """
    Loads SWGOH data and holds the aggregates of the most recent load.

    Territory Battle and Territory War data are independent: loading one
    does not touch the other.
    """

    def __init__(self):
        self.tb_snapshot: Optional[TBSnapshot] = None
        self.tw_report: Optional[TWReport] = None
        self.tw_date: Optional[str] = None
        self.last_error: Optional[str] = None
        self.warnings: List[str] = []

    def _fail(self, message: str) -> bool:
        logger.error(message)
        self.last_error = message
        return False

    def load_tb_snapshot(self, file_path: str) -> bool:
        """
        Load and aggregate a Territory Battle snapshot from a JSON file.

        Args:
            file_path: Path to the snapshot JSON file

        Returns:
            True if loaded successfully, False otherwise
        """
        self.tb_snapshot = None
        self.last_error = None

        try:
            data = load_json_file(file_path)
        except FileNotFoundError:
            return self._fail(f"File not found: {file_path}")
        except ValueError as e:
            return self._fail(f"Failed to parse JSON from {file_path}: {e}")
        except OSError as e:
            return self._fail(f"Failed to read {file_path}: {e}")

        snapshot = aggregate_snapshot(data)
        if snapshot.warnings:
            self.warnings = list(snapshot.warnings)
            return self._fail(f"Snapshot {file_path} could not be aggregated: {'; '.join(snapshot.warnings)}")

        self.tb_snapshot = snapshot
        logger.info(f"Loaded TB snapshot from {file_path}")
        return True

    def load_tw_logs(self, source: LogSource, date: Optional[str] = None) -> bool:
        """
        Load all Territory War log files for a date.

        Files that cannot be fetched or parsed are skipped with a warning.
        If no file can be loaded at all, the load fails and any previous
        report is discarded.

        Args:
            source: Where to read log files from
            date: War date (YYYYMMDD); defaults to the most recent available

        Returns:
            True if at least one log file was loaded, False otherwise
        """
        self.tw_report = None
        self.tw_date = None
        self.last_error = None
        self.warnings = []

        if date is None:
            dates = source.list_dates()
            if not dates:
                return self._fail("No TW log data found")
            date = dates[0]

        results_data = source.read_results(date)
        results = parse_tw_results(results_data) if results_data else {}

        file_names = source.list_log_files(date)
        if not file_names:
            return self._fail(f"No .json log files found for {date}")

        session = TWLoadSession()
        loaded = 0

        for index, file_name in enumerate(file_names, 1):
            logger.info(f"Loading file #{index}/{len(file_names)}: {file_name}")
            # undecodable bytes and malformed JSON both surface as ValueError
            try:
                data = source.read_log_file(date, file_name)
            except (OSError, requests.RequestException, ValueError) as e:
                message = f"Error loading {file_name}: {e}"
                logger.warning(message)
                self.warnings.append(message)
                continue

            if session.process_log_data(data):
                loaded += 1
            else:
                self.warnings.append(f"{file_name} is not a log document with an event section")

        if loaded == 0 or not session.players:
            return self._fail(f"No log files could be loaded for {date}")

        self.tw_report = session.finalize(results)
        self.tw_date = date
        logger.info(f"Loaded {loaded}/{len(file_names)} TW log files for {date}")
        return True

    def get_tb_report(self, sort_key: str = DEFAULT_SORT_KEY, ascending: Optional[bool] = None) -> List[Dict[str, Any]]:
        """
        Get ranked Territory Battle player records.

        Returns:
            List of player records, empty if no snapshot is loaded
        """
        if not self.tb_snapshot:
            logger.warning("No TB data loaded")
            return []
        return finalize(self.tb_snapshot.players, self.tb_snapshot.active_phases, sort_key, ascending)

    def get_tw_report(self, sort_key: str = DEFAULT_SORT_KEY, ascending: Optional[bool] = None) -> List[Dict[str, Any]]:
        """
        Get ranked Territory War player records.

        Players are ranked by their authoritative total attack score when the
        results file provides one, otherwise by the score summed from events.

        Returns:
            List of player records, empty if no logs are loaded
        """
        if not self.tw_report:
            logger.warning("No TW data loaded")
            return []
        return finalize(self.tw_report.players, (), sort_key, ascending)

    def get_tw_summary(self) -> Dict[str, Any]:
        """
        Get guild-wide Territory War statistics for the loaded date.

        Returns:
            Dictionary of summary statistics, empty if no logs are loaded
        """
        if not self.tw_report:
            logger.warning("No TW data loaded")
            return {}

        summary = self.tw_report.summary()
        summary['title'] = build_title(self.tw_date)
        summary['date'] = self.tw_date
        summary['window_start'] = self.tw_report.window_start
        summary['window_end'] = self.tw_report.window_end
        return summary
