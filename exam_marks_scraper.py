"""
Exam marks scraper for the WebKiosk portal.

Each subject row carries up to five mark components (two practicals, three
tests) with fixed maximum marks. Every component with marks above zero becomes
one ExamMark record.
"""

import logging
from datetime import datetime
from typing import List, Optional

from config import (
    WEBKIOSK_BASE_URL, EXAM_MARKS_PAGE_PATH, DATA_TABLE_ID, DEFAULT_SETTINGS,
    EXAM_COMPONENTS, EXAM_SELECT_SELECTOR, EXAM_SHOW_SELECTOR
)
from markup_extractor import TableById, extract_table, leading_float, split_subject_label
from models import ExamMark, ExamType

logger = logging.getLogger("exam_marks_scraper")

EXAM_MARKS_TABLE = TableById(DATA_TABLE_ID)

# (fraction of max marks, grade), best first
GRADE_THRESHOLDS = [
    (0.9, "A+"),
    (0.8, "A"),
    (0.7, "B+"),
    (0.6, "B"),
]


def grade_for(marks: float, max_marks: float) -> str:
    """Grade a component against its own maximum marks."""
    for fraction, grade in GRADE_THRESHOLDS:
        if marks >= max_marks * fraction:
            return grade
    return "C"


def parse_marks(text: str) -> float:
    value = leading_float(text)
    return value if value is not None else 0.0


def parse_exam_marks(html: str, semester: int = DEFAULT_SETTINGS['default_semester'],
                     user_id: str = "", now: Optional[datetime] = None) -> List[ExamMark]:
    """
    Extract exam mark records from the exam marks page.

    Args:
        html: HTML content of the page
        semester: Semester stamped on every record
        user_id: Enrollment number of the logged-in student
        now: Timestamp used for exam and published dates

    Returns:
        List of ExamMark records, empty when the table is missing
    """
    lookup = extract_table(html, EXAM_MARKS_TABLE)
    if not lookup.found:
        logger.warning("Exam marks table not found")
        return []

    timestamp = now or datetime.now()
    results = []
    subject_rows = 0

    for row_number, cells in enumerate(lookup.rows(), start=1):
        # Sr.No, Subject, P-1, P-2, TEST-1, TEST-2, TEST-3
        if len(cells) < 2 + len(EXAM_COMPONENTS):
            continue

        sr_no, subject_text = cells[0], cells[1]
        subject_name, subject_code = split_subject_label(subject_text, separator="- ")
        if not (subject_name and sr_no):
            continue
        subject_rows += 1
        subject_id = subject_code or f"SUBJ-{row_number}"

        for offset, (label, exam_type, max_marks) in enumerate(EXAM_COMPONENTS):
            marks = parse_marks(cells[2 + offset])
            if marks <= 0:
                continue
            results.append(ExamMark(
                user_id=user_id,
                subject_id=subject_id,
                subject_code=subject_id,
                subject_name=subject_name,
                semester=semester,
                exam_type=ExamType(exam_type),
                marks_obtained=marks,
                max_marks=max_marks,
                percentage=(marks / max_marks) * 100,
                grade=grade_for(marks, max_marks),
                exam_date=timestamp,
                published_date=timestamp,
            ))
            logger.debug(f"{subject_id} {label}: {marks}/{max_marks}")

    logger.info(f"Parsed {len(results)} exam mark entries from {subject_rows} subjects")
    return results


async def select_exam(driver, exam_code: str, settle_delay: float) -> bool:
    """
    Pick an exam in the page's exam selector and show its marks.

    Returns:
        True if the selector was present and submitted
    """
    try:
        if not await driver.has_selector(EXAM_SELECT_SELECTOR):
            return False
        await driver.select_option(EXAM_SELECT_SELECTOR, exam_code)
        await driver.click_and_wait(EXAM_SHOW_SELECTOR)
        await driver.settle(settle_delay)
        logger.info(f"Selected {exam_code} exam and submitted")
        return True
    except Exception as e:
        logger.warning(f"Could not interact with exam dropdown: {e}")
        return False


async def scrape_exam_marks(driver, base_url: str = WEBKIOSK_BASE_URL,
                            page_timeout: float = DEFAULT_SETTINGS['page_timeout'],
                            settle_delay: float = DEFAULT_SETTINGS['settle_delay'],
                            semester: int = DEFAULT_SETTINGS['default_semester'],
                            exam_code: Optional[str] = DEFAULT_SETTINGS['exam_code'],
                            user_id: str = "") -> List[ExamMark]:
    """
    Navigate to the exam marks page and parse it.

    The exam dropdown is only touched when ``exam_code`` is set; otherwise
    the marks of whichever exam the portal shows by default are parsed.

    Args:
        driver: Logged-in SessionDriver
        base_url: Portal base URL
        page_timeout: Timeout in seconds for the page load
        settle_delay: Fixed wait in seconds after the load
        semester: Semester stamped on every record
        exam_code: Exam to pick in the page's selector, if any
        user_id: Enrollment number of the logged-in student

    Returns:
        List of ExamMark records
    """
    exam_marks_url = f"{base_url.rstrip('/')}{EXAM_MARKS_PAGE_PATH}"
    logger.info(f"Scraping exam marks data from {exam_marks_url}")
    await driver.navigate(exam_marks_url, timeout=page_timeout)
    await driver.settle(settle_delay)
    logger.info(f"Exam marks page - URL: {driver.url}, Title: {await driver.title()}")

    if exam_code:
        await select_exam(driver, exam_code, settle_delay)
    await driver.save_snapshot("exam_marks")

    return parse_exam_marks(await driver.content(), semester=semester, user_id=user_id)
