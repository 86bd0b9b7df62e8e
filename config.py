"""
Configuration settings for the WebKiosk portal client.

This module contains the portal URLs, page paths, form selectors and the
default settings shared by the session driver, the login sequence and the
dataset scrapers.
"""

import os

# Portal URLs (supplied by the environment in deployment)
WEBKIOSK_BASE_URL = os.environ.get("WEBKIOSK_BASE_URL", "https://webkiosk.juet.ac.in")
WEBKIOSK_LOGIN_URL = os.environ.get("WEBKIOSK_LOGIN_URL", "https://webkiosk.juet.ac.in/")

# Page paths under the base URL
ATTENDANCE_PAGE_PATH = "/StudentFiles/Academic/StudentAttendanceList.jsp"
EXAM_MARKS_PAGE_PATH = "/StudentFiles/Exam/StudentEventMarksView.jsp"
SGPA_CGPA_PAGE_PATH = "/StudentFiles/Exam/StudCGPAReport.jsp"

# Login form selectors
LOGIN_FORM_SELECTOR = 'form[name="LoginForm"]'
USER_TYPE_SELECTOR = 'select[name="UserType"]'
STUDENT_USER_TYPE = "S"
ENROLLMENT_SELECTOR = 'input[name="MemberCode"]'
DOB_SELECTOR = 'input[name="DATE1"]'
PASSWORD_SELECTOR = 'input[name="Password"]'
CAPTCHA_TEXT_SELECTORS = ["font.noselect", ".noselect"]
CAPTCHA_INPUT_SELECTOR = 'input[name="txtcap"]'
SUBMIT_SELECTOR = 'input[name="BTNSubmit"]'

# Exam selector on the marks page
EXAM_SELECT_SELECTOR = 'select[name="exam"]'
EXAM_SHOW_SELECTOR = 'input[type="submit"][value="Show"]'

# Id of the data table on the attendance and exam marks pages
DATA_TABLE_ID = "table-1"

# URL fragments that only appear inside the logged-in area
SUCCESS_URL_PATTERNS = [
    "StudentFiles",
    "Student/",
    "welcome.jsp",
    "main.jsp",
    "portal",
    "dashboard",
]

# Page text that only appears inside the logged-in area
SUCCESS_CONTENT_KEYWORDS = [
    "Welcome",
    "Dashboard",
    "Student Portal",
    "Attendance",
    "Academic",
    "Profile",
    "Menu",
]

# Error phrases the portal shows on a rejected login
LOGIN_ERROR_PHRASES = ["Invalid", "Incorrect", "Please Input valid"]

# Exam components: (column label, exam type, max marks), in column order
EXAM_COMPONENTS = [
    ("P-1", "T1", 15),
    ("P-2", "T2", 15),
    ("TEST-1", "T3", 15),
    ("TEST-2", "FINAL", 25),
    ("TEST-3", "ASSIGNMENT", 35),
]

# Default client settings
DEFAULT_SETTINGS = {
    "headless": True,
    "viewport": {"width": 1366, "height": 768},
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "browser_args": [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-first-run",
        "--no-zygote",
        "--disable-gpu",
    ],
    "timeout": 30,  # Default timeout in seconds for page operations
    "login_navigation_timeout": 15,  # Timeout in seconds for the post-login navigation
    "page_timeout": 30,  # Timeout in seconds for dataset page loads
    "role_select_delay": 0.5,  # Pause after selecting the user type
    "redirect_retry_delay": 2.0,  # Pause after re-navigating away from a post-action page
    "settle_delay": 3.0,  # Pause after loading a dataset page
    "save_debug": False,
    "debug_dir": "debug_output",
    "default_semester": 7,
    "default_credits": 3,
    "exam_code": os.environ.get("WEBKIOSK_EXAM_CODE") or None,
}
