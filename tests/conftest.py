from typing import Dict, List, Optional

import pytest
from bs4 import BeautifulSoup

BASE_URL = "https://webkiosk.example.edu"
LOGIN_URL = "https://webkiosk.example.edu/"
ATTENDANCE_URL = BASE_URL + "/StudentFiles/Academic/StudentAttendanceList.jsp"
EXAM_MARKS_URL = BASE_URL + "/StudentFiles/Exam/StudentEventMarksView.jsp"
SGPA_URL = BASE_URL + "/StudentFiles/Exam/StudCGPAReport.jsp"
STUDENT_HOME_URL = BASE_URL + "/StudentFiles/FrameLeftStudent.jsp"
USER_ACTION_URL = BASE_URL + "/CommonFiles/UserAction.jsp"

LOGIN_PAGE = """
<html><head><title>WebKiosk</title></head><body>
<form name="LoginForm" action="CommonFiles/UserAction.jsp" method="post">
  <select name="UserType"><option value="">Select</option><option value="S">Student</option></select>
  <input name="MemberCode" type="text">
  <input name="DATE1" type="text">
  <input name="Password" type="password">
  <table bgcolor="#D5D6D8"><tr><td><s><i><font class="noselect" size="5">lR ShR!</font></i></s></td></tr></table>
  <input name="txtcap" type="text">
  <input type="submit" name="BTNSubmit" value="Submit">
</form>
</body></html>
"""

LOGIN_PAGE_NO_CAPTCHA = LOGIN_PAGE.replace('<font class="noselect" size="5">lR ShR!</font>', "")

STUDENT_HOME_PAGE = """
<html><head><title>JUET - Student</title></head><body>
<p>Welcome JOHN DOE</p><a href="#">Attendance</a>
</body></html>
"""

INVALID_LOGIN_PAGE = """
<html><head><title>WebKiosk</title></head><body>
<p>Invalid Password. Please Input valid details.</p>
</body></html>
"""

POST_ACTION_PAGE = """
<html><head><title>Session</title></head><body>
<form name="Redirect" action="index.jsp"></form>
</body></html>
"""


def attendance_page(rows: List[List[str]], info: Optional[List[str]] = None) -> str:
    info = info or ["Name: JOHN DOE [211B123]", "Course/Branch: B.Tech(CSE)", "Current Semester: 5"]
    info_cells = "".join(f"<td>{cell}</td>" for cell in info)
    body_rows = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"""
    <html><head><title>Attendance</title></head><body>
    <table><tr><td>JAYPEE UNIVERSITY</td></tr></table>
    <table><tr>{info_cells}</tr></table>
    <table id="table-1">
      <tr><td>Sl No</td><td>Subject</td><td>Lecture+Tutorial(%)</td><td>Lecture(%)</td><td>Tutorial(%)</td><td>Practical(%)</td></tr>
      {body_rows}
    </table>
    </body></html>
    """


def exam_marks_page(rows: List[List[str]]) -> str:
    body_rows = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"""
    <html><head><title>Exam Marks</title></head><body>
    <table id="table-1">
      <thead><tr><th>Sr.No</th><th>Subject</th><th>P-1</th><th>P-2</th><th>TEST-1</th><th>TEST-2</th><th>TEST-3</th></tr></thead>
      <tbody>{body_rows}</tbody>
    </table>
    </body></html>
    """


def sgpa_page(rows: List[List[str]]) -> str:
    body_rows = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"""
    <html><head><title>CGPA Report</title></head><body>
    <table><tr><td>Student CGPA Report</td></tr><tr><td>Printed on 12-05-2025</td></tr></table>
    <table>
      <tr><th>Semester</th><th>SGPA</th><th>CGPA</th><th>Credits</th></tr>
      {body_rows}
    </table>
    </body></html>
    """


class FakeDriver:
    """Scripted stand-in for SessionDriver serving fixed HTML per URL."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, landings: Optional[List[str]] = None,
                 submit_url: str = STUDENT_HOME_URL):
        self.pages = dict(pages or {})
        self.landings = list(landings or [])
        self.submit_url = submit_url
        self.current_url = ""
        self.initialized = False
        self.calls = []
        self.cleanups = 0
        self.failures = {}

    def fail_on(self, method: str, error: BaseException) -> None:
        self.failures[method] = error

    def _check(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    @property
    def is_initialized(self) -> bool:
        return self.initialized

    @property
    def url(self) -> str:
        return self.current_url

    def _soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.pages.get(self.current_url, ""), "html.parser")

    async def initialize(self) -> None:
        self._check("initialize")
        self.calls.append(("initialize",))
        self.initialized = True

    async def navigate(self, url: str, timeout: Optional[float] = None) -> bool:
        self._check("navigate")
        self.calls.append(("navigate", url))
        self.current_url = self.landings.pop(0) if self.landings else url
        return True

    async def title(self) -> str:
        title = self._soup().title
        return title.get_text() if title else ""

    async def content(self) -> str:
        self._check("content")
        return self.pages.get(self.current_url, "")

    async def has_selector(self, selector: str) -> bool:
        return self._soup().select_one(selector) is not None

    async def text_of(self, selector: str) -> Optional[str]:
        element = self._soup().select_one(selector)
        return element.get_text() if element is not None else None

    async def fill(self, selector: str, value: str) -> None:
        self._check("fill")
        self.calls.append(("fill", selector, value))

    async def select_option(self, selector: str, value: str) -> None:
        self.calls.append(("select_option", selector, value))

    async def click_and_wait(self, selector: str, timeout: Optional[float] = None) -> bool:
        self.calls.append(("click", selector))
        if selector == 'input[name="BTNSubmit"]':
            self.current_url = self.submit_url
        return True

    async def settle(self, seconds: float) -> None:
        self._check("settle")
        self.calls.append(("settle", seconds))

    async def save_snapshot(self, name: str):
        return None

    async def cleanup(self) -> None:
        self.cleanups += 1
        self.initialized = False

    def navigations(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "navigate"]


@pytest.fixture
def portal_pages():
    return {
        BASE_URL: LOGIN_PAGE,
        STUDENT_HOME_URL: STUDENT_HOME_PAGE,
        ATTENDANCE_URL: attendance_page([
            ["1", "DATA STRUCTURES - 18B11CI311", "85", "80", "90", ""],
            ["2", "PHYSICS LAB - 18B17PH371", "", "", "", "72"],
        ]),
        EXAM_MARKS_URL: exam_marks_page([
            ["1", "MATHEMATICS- 18B11MA111", "0", "12", "0", "20", "0"],
        ]),
        SGPA_URL: sgpa_page([
            ["1", "8.57", "8.57", "19"],
            ["2", "8.75", "8.66", "22"],
        ]),
    }


@pytest.fixture
def fake_driver(portal_pages):
    return FakeDriver(pages=portal_pages)
