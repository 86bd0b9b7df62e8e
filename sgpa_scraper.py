"""
SGPA/CGPA scraper for the WebKiosk portal.

No table id reliably marks the report table across portal versions, so every
table on the page is scanned and any row whose first cell is a semester number
counts as data.
"""

import logging
from datetime import datetime
from typing import List, Optional

from config import WEBKIOSK_BASE_URL, SGPA_CGPA_PAGE_PATH, DEFAULT_SETTINGS
from markup_extractor import AllTables, extract_table, leading_float, leading_int
from models import SGPACGPARecord

logger = logging.getLogger("sgpa_scraper")

SGPA_TABLES = AllTables()


def academic_year_for(moment: datetime) -> str:
    return f"{moment.year - 1}-{moment.year}"


def parse_sgpa_cgpa(html: str, user_id: str = "", now: Optional[datetime] = None) -> List[SGPACGPARecord]:
    """
    Extract SGPA/CGPA records from the report page.

    Rows are returned in page order; they are not sorted by semester.

    Args:
        html: HTML content of the page
        user_id: Enrollment number of the logged-in student
        now: Timestamp used for the academic year and published date

    Returns:
        List of SGPACGPARecord, empty when no row qualifies
    """
    lookup = extract_table(html, SGPA_TABLES, cell_tags=("td", "th"))
    timestamp = now or datetime.now()
    results = []

    for cells in lookup.rows():
        if len(cells) < 4:
            continue
        semester = leading_int(cells[0]) or 0
        if semester <= 0:
            continue

        results.append(SGPACGPARecord(
            user_id=user_id,
            semester=semester,
            sgpa=leading_float(cells[1]) or 0.0,
            cgpa=leading_float(cells[2]) or 0.0,
            credits=leading_int(cells[3]) or 0,
            academic_year=academic_year_for(timestamp),
            published_date=timestamp,
        ))

    logger.info(f"Scraped SGPA/CGPA data for {len(results)} semesters")
    return results


async def scrape_sgpa_cgpa(driver, base_url: str = WEBKIOSK_BASE_URL,
                           page_timeout: float = DEFAULT_SETTINGS['page_timeout'],
                           settle_delay: float = DEFAULT_SETTINGS['settle_delay'],
                           user_id: str = "") -> List[SGPACGPARecord]:
    """
    Navigate to the SGPA/CGPA report page and parse it.

    Args:
        driver: Logged-in SessionDriver
        base_url: Portal base URL
        page_timeout: Timeout in seconds for the page load
        settle_delay: Fixed wait in seconds after the load
        user_id: Enrollment number of the logged-in student

    Returns:
        List of SGPACGPARecord in page order
    """
    sgpa_url = f"{base_url.rstrip('/')}{SGPA_CGPA_PAGE_PATH}"
    logger.info(f"Scraping SGPA/CGPA data from {sgpa_url}")
    await driver.navigate(sgpa_url, timeout=page_timeout)
    await driver.settle(settle_delay)
    logger.info(f"SGPA page - URL: {driver.url}, Title: {await driver.title()}")
    await driver.save_snapshot("sgpa_cgpa")

    return parse_sgpa_cgpa(await driver.content(), user_id=user_id)
