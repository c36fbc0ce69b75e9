#!/usr/bin/env python3
"""
SWGOH Log Sources

Locates Territory War log documents. A data root is laid out as:

    <root>/tw_YYYYMMDD.json          results (authoritative attack totals)
    <root>/logs/YYYYMMDD/*.json      event logs for that war

The root can be a local directory or a URL served with directory listings.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from swgoh_parsing import load_json_file, parse_json_document

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r'^\d{8}$')


class LogSource:
    """Interface shared by local and HTTP log sources."""

    def list_dates(self) -> List[str]:
        """Return available war dates (YYYYMMDD), newest first."""
        raise NotImplementedError

    def list_log_files(self, date: str) -> List[str]:
        """Return the names of the .json log files for a date."""
        raise NotImplementedError

    def read_log_file(self, date: str, name: str) -> Any:
        """Read and parse one log file."""
        raise NotImplementedError

    def read_results(self, date: str) -> Optional[Dict[str, Any]]:
        """Read the results document for a date, or None if it is unavailable."""
        raise NotImplementedError


class LocalLogSource(LogSource):
    """Log files on the local filesystem."""

    def __init__(self, root):
        self.root = Path(root)

    def list_dates(self) -> List[str]:
        logs_dir = self.root / 'logs'
        if not logs_dir.is_dir():
            logger.error(f"Logs directory not found: {logs_dir}")
            return []
        dates = [p.name for p in logs_dir.iterdir() if p.is_dir() and DATE_PATTERN.match(p.name)]
        return sorted(dates, reverse=True)

    def list_log_files(self, date: str) -> List[str]:
        date_dir = self.root / 'logs' / date
        if not date_dir.is_dir():
            logger.error(f"No log directory for {date}: {date_dir}")
            return []
        return sorted(p.name for p in date_dir.iterdir() if p.is_file() and p.suffix == '.json')

    def read_log_file(self, date: str, name: str) -> Any:
        return load_json_file(self.root / 'logs' / date / name)

    def read_results(self, date: str) -> Optional[Dict[str, Any]]:
        path = self.root / f"tw_{date}.json"
        if not path.exists():
            logger.warning(f"Could not load TW results file: {path}")
            return None
        try:
            return load_json_file(path)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading TW results file {path}: {e}")
            return None


class HTTPLogSource(LogSource):
    """Log files served over HTTP with directory listings enabled."""

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        """
        Initialize the HTTP source.

        Args:
            base_url: URL of the data root (e.g. "https://example.org/data/tw/guild")
            timeout: Request timeout in seconds
            session: Optional requests session (a new one is created if not given)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str) -> requests.Response:
        url = f"{self.base_url}/{path}"
        logger.debug(f"GET {url}")
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _list_links(self, path: str) -> List[str]:
        soup = BeautifulSoup(self._get(path).text, 'html.parser')
        return [a['href'] for a in soup.find_all('a', href=True)]

    def list_dates(self) -> List[str]:
        try:
            links = self._list_links('logs/')
        except requests.RequestException as e:
            logger.error(f"Could not list directories in {self.base_url}/logs/: {e}")
            return []
        dates = {link.rstrip('/').split('/')[-1] for link in links if link.endswith('/')}
        return sorted((d for d in dates if DATE_PATTERN.match(d)), reverse=True)

    def list_log_files(self, date: str) -> List[str]:
        try:
            links = self._list_links(f"logs/{date}/")
        except requests.RequestException as e:
            logger.error(f"Could not list files in {self.base_url}/logs/{date}/: {e}")
            return []
        return [link.split('/')[-1] for link in links if link.endswith('.json')]

    def read_log_file(self, date: str, name: str) -> Any:
        return parse_json_document(self._get(f"logs/{date}/{name}").text)

    def read_results(self, date: str) -> Optional[Dict[str, Any]]:
        try:
            return parse_json_document(self._get(f"tw_{date}.json").text)
        except requests.RequestException as e:
            logger.warning(f"Could not load TW results file tw_{date}.json: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing TW results file tw_{date}.json: {e}")
            return None
