"""
Attendance scraper for the WebKiosk portal.

The attendance page lists one row per subject with percentage-only cells for
the combined lecture/tutorial, lecture, tutorial and practical streams. Raw
attended/total counts are not shown, so they are estimated from the
percentages.
"""

import logging
import math
import re

from bs4 import BeautifulSoup

from config import (
    WEBKIOSK_BASE_URL, ATTENDANCE_PAGE_PATH, DATA_TABLE_ID, DEFAULT_SETTINGS
)
from markup_extractor import (
    TableById, describe_tables, extract_table, first_int, own_rows, parse_html,
    split_subject_label
)
from models import AttendanceCount, AttendanceResult, StudentInfo, Subject, SubjectAttendance

logger = logging.getLogger("attendance_scraper")

ATTENDANCE_TABLE = TableById(DATA_TABLE_ID)

_NAME_PATTERN = re.compile(r"Name:\s*(.+?)\[(.+?)\]")
_COURSE_PATTERN = re.compile(r"Course/Branch:\s*(.+)")
_SEMESTER_PATTERN = re.compile(r"Current Semester:\s*(\d+)")


def js_round(value: float) -> int:
    """Round half up, unlike the built-in round()."""
    return int(math.floor(value + 0.5))


def estimate_counts(percentage: int) -> AttendanceCount:
    """
    Estimate attended/total classes from a bare percentage.

    attended = round(pct * 0.8) and total = round(pct * 0.8 / (pct / 100)).
    This is an approximation kept unchanged for downstream compatibility.
    A zero percentage gives 0/0.
    """
    if percentage <= 0:
        return AttendanceCount(0, 0)
    attended = js_round(percentage * 0.8)
    total = js_round(percentage * 0.8 / (percentage / 100))
    return AttendanceCount(attended, total)


def parse_student_info(soup: BeautifulSoup) -> StudentInfo:
    """
    Parse the student summary from the second table on the attendance page.

    Returns:
        StudentInfo; ``found`` is False when the table shape does not match,
        and fields stay empty when the labels do not match
    """
    tables = soup.find_all("table")
    if len(tables) < 2:
        return StudentInfo()

    rows = own_rows(tables[1])
    if not rows:
        return StudentInfo()
    cells = rows[0].find_all("td", recursive=False)
    if len(cells) < 3:
        return StudentInfo()

    name_match = _NAME_PATTERN.search(cells[0].get_text())
    course_match = _COURSE_PATTERN.search(cells[1].get_text())
    semester_match = _SEMESTER_PATTERN.search(cells[2].get_text())

    return StudentInfo(
        name=name_match.group(1).strip() if name_match else "",
        enrollment_number=name_match.group(2).strip() if name_match else "",
        course=course_match.group(1).strip() if course_match else "",
        current_semester=int(semester_match.group(1)) if semester_match else 0,
        found=True,
    )


def parse_attendance(html: str, default_semester: int = DEFAULT_SETTINGS['default_semester'],
                     default_credits: int = DEFAULT_SETTINGS['default_credits']) -> AttendanceResult:
    """
    Extract attendance records from the attendance page.

    Args:
        html: HTML content of the page
        default_semester: Semester used when the page does not state one
        default_credits: Credits assigned to every subject

    Returns:
        AttendanceResult; ``table_found`` is False when the table is missing
    """
    soup = parse_html(html)
    lookup = extract_table(soup, ATTENDANCE_TABLE)
    if not lookup.found:
        logger.warning(f"Attendance table not found, tables on page: {describe_tables(soup)}")
        return AttendanceResult.not_found(lookup.reason)

    student_info = parse_student_info(soup)
    semester = student_info.current_semester
    if not 1 <= semester <= 8:
        semester = default_semester

    subjects = []
    # Row numbers count the header row as 0
    for row_number, cells in enumerate(lookup.rows(), start=1):
        if len(cells) < 6:
            continue

        sno, label = cells[0], cells[1]
        name, code = split_subject_label(label)
        if not (name and sno):
            continue

        lec_tut_pct = first_int(cells[2])
        lec_pct = first_int(cells[3])
        tut_pct = first_int(cells[4])
        prac_pct = first_int(cells[5])

        subjects.append(Subject(
            subject_id=code or f"subject-{row_number}",
            name=name,
            code=code,
            attendance=SubjectAttendance(
                lectures=estimate_counts(lec_pct),
                tutorials=estimate_counts(tut_pct),
                practicals=estimate_counts(prac_pct),
            ),
            percentage=lec_tut_pct or lec_pct,
            semester=semester,
            credits=default_credits,
        ))

    if not subjects:
        logger.warning("No attendance data found")
    logger.info(f"Parsed attendance for {len(subjects)} subjects")
    return AttendanceResult(subjects=subjects, student_info=student_info, table_found=True)


async def scrape_attendance(driver, base_url: str = WEBKIOSK_BASE_URL,
                            page_timeout: float = DEFAULT_SETTINGS['page_timeout'],
                            settle_delay: float = DEFAULT_SETTINGS['settle_delay'],
                            default_semester: int = DEFAULT_SETTINGS['default_semester'],
                            default_credits: int = DEFAULT_SETTINGS['default_credits']) -> AttendanceResult:
    """
    Navigate to the attendance page and parse it.

    Args:
        driver: Logged-in SessionDriver
        base_url: Portal base URL
        page_timeout: Timeout in seconds for the page load
        settle_delay: Fixed wait in seconds after the load

    Returns:
        AttendanceResult for the logged-in student
    """
    attendance_url = f"{base_url.rstrip('/')}{ATTENDANCE_PAGE_PATH}"
    logger.info(f"Scraping attendance data from {attendance_url}")
    await driver.navigate(attendance_url, timeout=page_timeout)
    await driver.settle(settle_delay)
    logger.info(f"Attendance page - URL: {driver.url}, Title: {await driver.title()}")
    await driver.save_snapshot("attendance")

    return parse_attendance(await driver.content(), default_semester, default_credits)
