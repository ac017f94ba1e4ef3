"""
Fetch module for the Award Deadlines Board.

This module reads the submission sheet that feeds the ingestion bot, either
from the sheet's published CSV export URL or from a local CSV export, with
proper error handling, retries, and exponential backoff.

Rows are returned positionally, header row included, so that list index
``i`` is sheet row ``i + 1``.
"""

import csv
import io
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from awards.utils import get_logger


# Module logger
logger = get_logger("fetch")

# Default configuration
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 1.0
DEFAULT_USER_AGENT = "AwardDeadlinesBot/2.0"


class SheetFetchError(Exception):
    """Raised when the submission sheet cannot be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def create_session(
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
) -> requests.Session:
    """
    Create a requests session with retry configuration.

    Configures automatic retries with exponential backoff for
    transient failures (429/5xx responses, connection errors).

    Args:
        max_retries: Maximum number of retry attempts.
        backoff_factor: Multiplier for exponential backoff between retries.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "HEAD"],
        raise_on_status=False
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/csv,text/plain;q=0.9,*/*;q=0.8",
    })

    return session


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses HTTP/HTTPS.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid, False otherwise.
    """
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def parse_sheet_csv(text: str) -> List[List[str]]:
    """
    Split CSV text into positional rows.

    Fully blank lines are kept as empty rows so row numbers stay aligned
    with the sheet.

    Args:
        text: CSV document.

    Returns:
        List of rows, each a list of cell strings.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    return [list(row) for row in csv.reader(io.StringIO(text))]


def fetch_sheet_csv(
    url: str,
    session: requests.Session,
    timeout: int = DEFAULT_TIMEOUT
) -> str:
    """
    Download the published CSV export of the sheet.

    Args:
        url: CSV export URL.
        session: Configured requests session.
        timeout: Request timeout in seconds.

    Returns:
        The CSV document as text.

    Raises:
        SheetFetchError: If the URL is invalid or the request fails.
    """
    logger.debug(f"Fetching sheet CSV: {url}")

    if not validate_url(url):
        raise SheetFetchError(f"Invalid URL format: {url}")

    try:
        response = session.get(url, timeout=timeout)
    except requests.exceptions.Timeout:
        raise SheetFetchError(f"Timeout fetching {url}") from None
    except requests.exceptions.ConnectionError as e:
        raise SheetFetchError(f"Connection error for {url}: {e}") from e
    except requests.exceptions.RequestException as e:
        raise SheetFetchError(f"Request failed for {url}: {e}") from e

    if response.status_code != 200:
        raise SheetFetchError(
            f"HTTP {response.status_code} fetching {url}",
            status_code=response.status_code
        )

    # Sheets exports are UTF-8 but often omit the charset header
    response.encoding = "utf-8"
    logger.info(f"Successfully fetched sheet CSV ({len(response.text)} bytes)")
    return response.text


def read_sheet_file(path: str) -> str:
    """
    Read a local CSV export of the sheet.

    Raises:
        SheetFetchError: If the file cannot be read.
    """
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise SheetFetchError(f"Could not read sheet export {path}: {e}") from e


def load_sheet_rows(
    url: Optional[str] = None,
    path: Optional[str] = None,
    timeout: int = DEFAULT_TIMEOUT
) -> List[List[str]]:
    """
    Load all sheet rows from a CSV export URL or a local file.

    Args:
        url: Published CSV export URL. Takes precedence over path.
        path: Local CSV export.
        timeout: Request timeout in seconds.

    Returns:
        All rows including the header row.

    Raises:
        SheetFetchError: If neither source is given or retrieval fails.
    """
    if url:
        session = create_session()
        try:
            text = fetch_sheet_csv(url, session, timeout)
        finally:
            session.close()
    elif path:
        text = read_sheet_file(path)
    else:
        raise SheetFetchError("No sheet source configured (set SHEET_CSV_URL or SHEET_CSV_PATH)")

    rows = parse_sheet_csv(text)
    logger.info(f"Loaded {len(rows)} sheet row(s) including header")
    return rows
