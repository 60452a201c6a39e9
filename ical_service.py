#!/usr/bin/env python3
"""
M-League iCal Subscription Service

A self-contained service that:
1. Scrapes the M-League schedule from m-league.jp
2. Generates an iCal file
3. Serves it via HTTP for calendar subscription
4. Auto-refreshes on a schedule (default: every 6 hours)

Usage:
    python ical_service.py
    python ical_service.py --config config.json --port 5000

    # Scrape once and print the ICS to stdout
    python ical_service.py --once

    # Subscribe in your calendar app to:
    # http://YOUR_IP:5000/calendar.ics
"""

import argparse
import html
import logging
import os
import socket
import sys
import threading
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from flask import Flask, Response

from ical_generator import build_summary, generate_ical
from mleague_config import ConfigError, get_config, load_config
from scraper import BrowserFetcher, fetch_all, fetch_url

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global calendar storage
current_calendar = None
last_update = None
records_cache = []

# One run at a time: the scheduler job and /refresh share the fetcher
update_lock = threading.Lock()


def update_calendar(config: dict = None, fetcher=fetch_url):
    """Scrape and update the calendar."""
    global current_calendar, last_update, records_cache

    config = get_config(config)

    with update_lock:
        logger.info("Updating calendar...")

        records = fetch_all(fetcher, config)

        if records:
            current_calendar = generate_ical(records, config)
            last_update = datetime.now(ZoneInfo(config['calendar']['timezone']))
            records_cache = records
            logger.info(f"Calendar updated with {len(records)} total matches")
        else:
            logger.warning("No matches found - keeping existing calendar")


def create_app(config: dict = None, fetcher=fetch_url):
    """Create Flask app."""
    config = get_config(config)
    app = Flask(__name__)

    @app.route('/')
    def index():
        upcoming = ''.join(
            f"<li>{r.date} {html.escape(build_summary(r.teams))}</li>"
            for r in records_cache[:10]
        )
        return f"""
        <html>
        <head><title>M-League Calendar Service</title></head>
        <body style="font-family: sans-serif; max-width: 600px; margin: 40px auto; padding: 20px;">
            <h1>{html.escape(config['calendar']['name'])}</h1>
            <p><strong>Last Updated:</strong> {last_update.strftime('%Y-%m-%d %H:%M') if last_update else 'Never'}</p>
            <p><strong>Matches Found:</strong> {len(records_cache)}</p>

            <h2>Subscribe</h2>
            <p>Add this URL to your calendar app:</p>
            <code style="background: #f0f0f0; padding: 10px; display: block; word-break: break-all;">
                {os.environ.get('PUBLIC_URL', 'http://localhost:5000')}/calendar.ics
            </code>

            <h2>Matches</h2>
            <ul>
            {upcoming}
            </ul>
        </body>
        </html>
        """

    @app.route('/calendar.ics')
    @app.route('/m-league-schedule.ics')
    def serve_calendar():
        if current_calendar is None:
            return Response(
                "Calendar not yet available. Please wait for first update.",
                status=503,
                mimetype='text/plain'
            )

        return Response(
            current_calendar,
            mimetype='text/calendar',
            headers={
                'Content-Disposition': 'inline; filename="m-league-schedule.ics"',
                'Cache-Control': 'no-cache, no-store, must-revalidate',
                'X-Last-Update': last_update.isoformat() if last_update else 'never'
            }
        )

    @app.route('/status')
    def status():
        return {
            'status': 'running',
            'last_update': last_update.isoformat() if last_update else None,
            'has_calendar': current_calendar is not None,
            'calendar': config['calendar']['name'],
            'matches_count': len(records_cache)
        }

    @app.route('/refresh', methods=['POST'])
    def refresh():
        update_calendar(config, fetcher)
        return {'status': 'refreshed', 'matches_count': len(records_cache)}

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description='M-League iCal Subscription Service')
    parser.add_argument('--config', '-c', help='Config file (JSON)')
    parser.add_argument('--port', '-p', type=int, default=5000, help='HTTP port (default: 5000)')
    parser.add_argument('--refresh', '-r', type=int, help='Refresh interval in hours (default: 6)')
    parser.add_argument('--browser', action='store_true', help='Load pages with headless Chrome')
    parser.add_argument('--once', action='store_true', help='Scrape once and output ICS to stdout')

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else dict(get_config())
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.refresh:
        config['refresh_hours'] = args.refresh

    refresh_hours = config.get('refresh_hours', 6)
    fetcher = BrowserFetcher() if args.browser else fetch_url

    # One-shot mode
    if args.once:
        try:
            update_calendar(config, fetcher)
        finally:
            if args.browser:
                fetcher.close()
        if current_calendar:
            sys.stdout.write(current_calendar)
        return

    print(f"\nM-League iCal Subscription Service")
    print(f"   Calendar: {config['calendar']['name']}")
    print(f"   Months: {len(config['periods'])}")
    print(f"   Refresh: Every {refresh_hours} hours")

    # Initial update
    print(f"\nFetching initial schedule...")
    update_calendar(config, fetcher)

    # Set up scheduler
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        lambda: update_calendar(config, fetcher),
        'interval',
        hours=refresh_hours,
        id='update_calendar'
    )
    scheduler.start()

    # Get local IP
    hostname = socket.gethostname()
    try:
        local_ip = socket.gethostbyname(hostname)
    except OSError:
        local_ip = "localhost"

    print(f"\nServer starting...")
    print(f"   Subscribe URL: http://{local_ip}:{args.port}/calendar.ics")
    print(f"   Status JSON: http://{local_ip}:{args.port}/status")
    print(f"\n   Press Ctrl+C to stop\n")

    # Run Flask
    app = create_app(config, fetcher)
    try:
        app.run(host='0.0.0.0', port=args.port, debug=False, threaded=True)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown()
        if args.browser:
            fetcher.close()
        print("\nService stopped.")


if __name__ == '__main__':
    main()
