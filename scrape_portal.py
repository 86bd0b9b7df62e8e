#!/usr/bin/env python3
"""
WebKiosk Portal Scraper

This script logs into the WebKiosk portal with a student's credentials and
collects attendance, exam marks and SGPA/CGPA data. Results are printed or
written as JSON, and optionally exported as CSV files.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from config import DEFAULT_SETTINGS
from models import Credentials
from session_driver import SessionLaunchError
from webkiosk_client import WebKioskClient

logger = logging.getLogger("scrape_portal")

TARGETS = ["attendance", "marks", "sgpa"]


def configure_logging(level: str = "INFO", log_file: str = "webkiosk_scraper.log") -> None:
    """Send log records to a log file and stdout."""
    logging.basicConfig(
        level=getattr(logging, level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


def flatten_subject(subject: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the nested attendance counts of a subject for CSV output."""
    row = {key: value for key, value in subject.items() if key != "attendance"}
    for stream, counts in subject.get("attendance", {}).items():
        row[f"{stream}_attended"] = counts["attended"]
        row[f"{stream}_total"] = counts["total"]
    return row


def save_to_csv(data: List[Dict[str, Any]], csv_dir: str, filename: str) -> Optional[Path]:
    """
    Save records to a CSV file.

    Args:
        data: List of dictionaries to save
        csv_dir: Directory for the CSV file
        filename: Name of the output CSV file

    Returns:
        Path of the written file, or None if there was nothing to save
    """
    if not data:
        logger.warning(f"No data to save to {filename}")
        return None

    csv_folder = Path(csv_dir)
    csv_folder.mkdir(parents=True, exist_ok=True)
    csv_path = csv_folder / filename

    df = pd.DataFrame(data)
    df.to_csv(csv_path, index=False)
    logger.info(f"Saved {len(data)} records to {csv_path}")
    return csv_path


def export_csv(results: Dict[str, Any], csv_dir: str) -> List[Path]:
    """Write one CSV per scraped target."""
    written = []
    if "attendance" in results:
        subjects = [flatten_subject(subject) for subject in results["attendance"]["subjects"]]
        written.append(save_to_csv(subjects, csv_dir, "attendance.csv"))
    if "examMarks" in results:
        written.append(save_to_csv(results["examMarks"], csv_dir, "exam_marks.csv"))
    if "sgpaCgpa" in results:
        records = [
            {key: value for key, value in record.items() if key != "subjects"}
            for record in results["sgpaCgpa"]
        ]
        written.append(save_to_csv(records, csv_dir, "sgpa_cgpa.csv"))
    return [path for path in written if path is not None]


async def run(credentials: Credentials, targets: List[str], settings: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Log in and scrape the requested targets on one session.

    Returns:
        Dictionary of results keyed by target, or None if login failed
    """
    async with WebKioskClient(**settings) as client:
        if not await client.login(credentials):
            logger.error(f"Login failed: {client.last_login.reason}")
            return None

        results = {}
        if "attendance" in targets:
            results["attendance"] = (await client.scrape_attendance()).to_dict()
        if "marks" in targets:
            results["examMarks"] = [mark.to_dict() for mark in await client.scrape_exam_marks()]
        if "sgpa" in targets:
            results["sgpaCgpa"] = [record.to_dict() for record in await client.scrape_sgpa_cgpa()]
        return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Scrape attendance, exam marks and SGPA/CGPA from WebKiosk')
    parser.add_argument('--enrollment', default=os.environ.get('WEBKIOSK_ENROLLMENT'),
                        help='Enrollment number (defaults to $WEBKIOSK_ENROLLMENT)')
    parser.add_argument('--dob', default=os.environ.get('WEBKIOSK_DOB'),
                        help='Date of birth in the format the portal expects (defaults to $WEBKIOSK_DOB)')
    parser.add_argument('--password', default=os.environ.get('WEBKIOSK_PASSWORD'),
                        help='Portal password (defaults to $WEBKIOSK_PASSWORD)')
    parser.add_argument('--targets', nargs='+', choices=TARGETS, default=TARGETS,
                        help='Datasets to scrape')
    parser.add_argument('--output', help='Write JSON results to this file instead of stdout')
    parser.add_argument('--csv-dir', help='Also export each dataset as CSV into this directory')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--timeout', type=int, default=DEFAULT_SETTINGS['timeout'],
                        help='Timeout in seconds for page operations')
    parser.add_argument('--exam-code', default=DEFAULT_SETTINGS['exam_code'],
                        help='Exam to select on the marks page (e.g. 2025EVESEM)')
    parser.add_argument('--save-debug', action='store_true', help='Save page HTML at each step')
    parser.add_argument('--debug-dir', default=DEFAULT_SETTINGS['debug_dir'], help='Directory for debug files')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO', help='Set logging level')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the scraper."""
    parser = build_parser()
    args = parser.parse_args(argv)

    missing = [name for name in ('enrollment', 'dob', 'password') if not getattr(args, name)]
    if missing:
        parser.error(f"missing credentials: {', '.join('--' + name for name in missing)}")

    configure_logging(args.log_level)

    credentials = Credentials(args.enrollment, args.dob, args.password)
    settings = {
        'headless': not args.headed,
        'timeout': args.timeout,
        'exam_code': args.exam_code,
        'save_debug': args.save_debug,
        'debug_dir': args.debug_dir,
    }
    if args.save_debug:
        logger.info(f"Debug file saving enabled. Debug files will be saved to {args.debug_dir}")

    try:
        results = asyncio.run(run(credentials, args.targets, settings))
    except SessionLaunchError as e:
        logger.error(f"Could not start the browser: {e}")
        return 2

    if results is None:
        return 1

    payload = json.dumps(results, indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        logger.info(f"Saved results to {args.output}")
    else:
        print(payload)

    if args.csv_dir:
        export_csv(results, args.csv_dir)

    return 0


if __name__ == "__main__":
    sys.exit(main())
