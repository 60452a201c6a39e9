#!/usr/bin/env python3
"""
M-League Schedule Scraper for GitHub Actions

Fetches the monthly schedule pages from m-league.jp, extracts every game,
and writes a single iCal file for GitHub Pages hosting.

Features:
- One page per configured month, processed in order
- A failing month is logged and skipped, the rest still make it in
- Stable event UIDs, so calendar apps update events instead of duplicating them
- Plain HTTP by default, headless Chrome with --browser

Usage:
    python scraper.py
    python scraper.py --config config.json --output docs/m-league-schedule.ics
    python scraper.py --period 2025-10 --period 2025-11
"""

import argparse
import logging
import sys
import urllib.error
import urllib.request
from pathlib import Path

from ical_generator import generate_ical
from mleague_config import ConfigError, get_config, load_config, parse_period
from schedule_parser import has_schedule_data, parse_schedules

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'


def fetch_url(url: str, headers: dict = None, timeout: int = 30) -> tuple[int, str]:
    """Fetch a URL and return (status, body).

    HTTP error statuses are returned, not raised. Network errors propagate.
    """
    default_headers = {'User-Agent': USER_AGENT}
    if headers:
        default_headers.update(headers)

    req = urllib.request.Request(url, headers=default_headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.status, response.read().decode('utf-8')
    except urllib.error.HTTPError as e:
        return e.code, ''


class BrowserFetcher:
    """Load pages in headless Chrome for when plain HTTP gets blocked.

    Use as a context manager so the browser is shut down afterwards:

        with BrowserFetcher() as fetcher:
            records = fetch_all(fetcher)
    """

    def __init__(self, headless: bool = True, wait_seconds: int = 10):
        self.headless = headless
        self.wait_seconds = wait_seconds
        self.driver = None

    def create_driver(self):
        """Create a Selenium Chrome driver."""
        from selenium import webdriver
        from selenium.webdriver.chrome.options import Options
        from selenium.webdriver.chrome.service import Service
        from webdriver_manager.chrome import ChromeDriverManager

        options = Options()
        if self.headless:
            options.add_argument('--headless=new')
        options.add_argument('--no-sandbox')
        options.add_argument('--disable-dev-shm-usage')
        options.add_argument('--disable-gpu')
        options.add_argument('--window-size=1920,1080')
        options.add_argument(f'--user-agent={USER_AGENT}')

        service = Service(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def __call__(self, url: str) -> tuple[int, str]:
        from selenium.webdriver.common.by import By
        from selenium.webdriver.support import expected_conditions as EC
        from selenium.webdriver.support.ui import WebDriverWait

        if self.driver is None:
            self.driver = self.create_driver()

        self.driver.get(url)
        WebDriverWait(self.driver, self.wait_seconds).until(
            EC.presence_of_element_located((By.TAG_NAME, "body"))
        )
        # WebDriver doesn't expose the HTTP status; a loaded page counts as OK
        return 200, self.driver.page_source

    def close(self):
        if self.driver:
            self.driver.quit()
            self.driver = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def build_schedule_url(year: int, month: int, config: dict = None) -> str:
    config = get_config(config)
    return f"{config['base_url']}?mly={year}&mlm={month}#schedule"


def fetch_month(year: int, month: int, fetcher=fetch_url, config: dict = None) -> list:
    """Fetch and parse one month of games.

    Never raises: fetch errors and empty months are logged and give [].
    """
    config = get_config(config)
    url = build_schedule_url(year, month, config)

    logger.info(f"Fetching schedule from: {url}")

    try:
        status, html = fetcher(url)
        if not 200 <= status < 300:
            logger.error(f"Error fetching schedule for {year}/{month}: HTTP status {status}")
            return []

        if not has_schedule_data(html, config):
            logger.info(f"No schedule data available for {year}/{month}")
            return []

        return parse_schedules(html, year, config)
    except Exception as e:
        logger.error(f"Error fetching schedule for {year}/{month}: {e}")
        return []


def fetch_period(period, fetcher=fetch_url, config: dict = None) -> list:
    return fetch_month(period.year, period.month, fetcher, config)


def fetch_periods(periods, fetcher=fetch_url, config: dict = None) -> list:
    """Fetch the given periods one after another and concatenate the games."""
    all_records = []

    for period in periods:
        records = fetch_period(period, fetcher, config)
        all_records.extend(records)
        logger.info(f"Found {len(records)} matches for {period}")

    return all_records


def fetch_all(fetcher=fetch_url, config: dict = None) -> list:
    """Fetch every configured period."""
    config = get_config(config)
    return fetch_periods(config['periods'], fetcher, config)


def save_to_file(filename, content: str):
    """Write content as UTF-8, replacing any existing file."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    logger.info(f"Saved to {filename}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='M-League Schedule Scraper')
    parser.add_argument('--config', '-c', help='Config file (JSON)')
    parser.add_argument('--output', '-o', help='Output ICS file (default: docs/m-league-schedule.ics)')
    parser.add_argument('--period', '-p', action='append', default=[],
                        help='Month to fetch as YYYY-MM; repeat for more (default: configured periods)')
    parser.add_argument('--browser', action='store_true', help='Load pages with headless Chrome')
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else get_config()
        periods = [parse_period(p) for p in args.period] or config['periods']
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    if not periods:
        logger.error("No periods configured")
        sys.exit(1)

    output = args.output or config['output']

    logger.info("Starting M-League schedule fetcher...")
    logger.info(f"Fetching {len(periods)} months from {periods[0]} to {periods[-1]}")

    if args.browser:
        with BrowserFetcher() as fetcher:
            records = fetch_periods(periods, fetcher, config)
    else:
        records = fetch_periods(periods, fetch_url, config)

    if not records:
        logger.warning("No schedule data found - keeping existing calendar")
        return

    logger.info(f"Total: {len(records)} matches found")

    try:
        save_to_file(output, generate_ical(records, config))
    except OSError as e:
        logger.error(f"Could not write {output}: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
