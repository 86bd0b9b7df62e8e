"""
WebKiosk portal client.

The boundary object the API layer holds: one client owns one browser session
and exposes login, the three dataset scrapes and cleanup. Operations on one
client must run one at a time. To fetch targets in parallel, use one client
per target.
"""

import logging
from typing import List, Optional

from attendance_scraper import scrape_attendance
from config import WEBKIOSK_BASE_URL, WEBKIOSK_LOGIN_URL, DEFAULT_SETTINGS
from exam_marks_scraper import scrape_exam_marks
from login_utils import LoginResult, LoginSequencer, LoginState
from models import AttendanceResult, Credentials, ExamMark, SGPACGPARecord, SyncResult
from session_driver import SessionDriver
from sgpa_scraper import scrape_sgpa_cgpa

logger = logging.getLogger("webkiosk_client")


class PortalSessionError(RuntimeError):
    """Raised when a scrape is attempted without a logged-in session."""


class PortalLoginError(PortalSessionError):
    """Raised by a full sync when the portal rejects the login."""


class WebKioskClient:
    """
    Log in to the portal and scrape attendance, exam marks and SGPA/CGPA.

    ``cleanup()`` must be called once per login whatever the outcome; using the
    client as an async context manager does that automatically.
    """

    def __init__(self, base_url: Optional[str] = None, login_url: Optional[str] = None,
                 driver: Optional[SessionDriver] = None, **settings):
        """
        Initialize the client. No browser is started here.

        Args:
            base_url: Portal base URL (defaults to config.WEBKIOSK_BASE_URL)
            login_url: Portal login URL (defaults to config.WEBKIOSK_LOGIN_URL)
            driver: Session driver to use instead of a new one
            **settings: Overrides for config.DEFAULT_SETTINGS
        """
        unknown = set(settings) - set(DEFAULT_SETTINGS)
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")

        self.base_url = base_url or WEBKIOSK_BASE_URL
        self.login_url = login_url or WEBKIOSK_LOGIN_URL
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(settings)

        self.driver = driver or SessionDriver(
            headless=self.settings['headless'],
            timeout=self.settings['timeout'],
            viewport=self.settings['viewport'],
            user_agent=self.settings['user_agent'],
            browser_args=self.settings['browser_args'],
            save_debug=self.settings['save_debug'],
            debug_dir=self.settings['debug_dir'],
        )
        self.sequencer = LoginSequencer(
            self.driver,
            base_url=self.base_url,
            login_url=self.login_url,
            role_select_delay=self.settings['role_select_delay'],
            redirect_retry_delay=self.settings['redirect_retry_delay'],
            navigation_timeout=self.settings['login_navigation_timeout'],
        )
        self.logged_in = False
        self.enrollment_number = ""
        self.current_semester = None
        self.last_login: Optional[LoginResult] = None

    async def __aenter__(self) -> "WebKioskClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup()

    async def initialize(self) -> None:
        """
        Start the browser session ahead of login.

        Raises:
            SessionLaunchError: If the browser cannot be started
        """
        await self.driver.initialize()

    async def login(self, credentials: Credentials) -> bool:
        """
        Log in to the portal.

        Args:
            credentials: Enrollment number, date of birth and password

        Returns:
            True if the portal accepted the login

        Raises:
            SessionLaunchError: If the browser cannot be started
        """
        await self.driver.initialize()

        self.logged_in = False
        self.enrollment_number = credentials.enrollment_number
        try:
            self.last_login = await self.sequencer.login(credentials)
        except BaseException as e:
            logger.error(f"Login interrupted for {credentials.enrollment_number}: {e!r}")
            await self.cleanup()
            raise
        self.logged_in = self.last_login.success
        return self.logged_in

    def _require_login(self) -> None:
        if not self.logged_in or not self.driver.is_initialized:
            raise PortalSessionError("Page not initialized or not logged in")

    async def _run(self, label: str, scrape, **kwargs):
        """Run a scraper on the session, releasing the session before any error surfaces."""
        self._require_login()
        try:
            return await scrape(self.driver, base_url=self.base_url, **kwargs)
        except BaseException as e:
            logger.error(f"Failed to scrape {label}: {e!r}")
            await self.cleanup()
            raise

    async def scrape_attendance(self) -> AttendanceResult:
        """
        Scrape attendance for the logged-in student.

        Returns:
            AttendanceResult; a missing table is reported, not raised
        """
        result = await self._run(
            "attendance", scrape_attendance,
            page_timeout=self.settings['page_timeout'],
            settle_delay=self.settings['settle_delay'],
            default_semester=self.settings['default_semester'],
            default_credits=self.settings['default_credits'],
        )
        if 1 <= result.student_info.current_semester <= 8:
            self.current_semester = result.student_info.current_semester
        logger.info(f"Attendance scraping results: {len(result.subjects)} subjects, "
                    f"table found: {result.table_found}")
        return result

    async def scrape_exam_marks(self) -> List[ExamMark]:
        """Scrape exam marks for the logged-in student."""
        return await self._run(
            "exam marks", scrape_exam_marks,
            page_timeout=self.settings['page_timeout'],
            settle_delay=self.settings['settle_delay'],
            semester=self.current_semester or self.settings['default_semester'],
            exam_code=self.settings['exam_code'],
            user_id=self.enrollment_number,
        )

    async def scrape_sgpa_cgpa(self) -> List[SGPACGPARecord]:
        """Scrape SGPA/CGPA for the logged-in student, in page order."""
        return await self._run(
            "SGPA/CGPA", scrape_sgpa_cgpa,
            page_timeout=self.settings['page_timeout'],
            settle_delay=self.settings['settle_delay'],
            user_id=self.enrollment_number,
        )

    async def sync_all_data(self, credentials: Credentials) -> SyncResult:
        """
        Log in and collect every dataset, then release the session.

        The scrapes run one after another on the single session.

        Raises:
            PortalLoginError: If the portal rejects the login
        """
        try:
            if not await self.login(credentials):
                reason = self.last_login.reason if self.last_login is not None else "unknown"
                raise PortalLoginError(f"Login failed: {reason}")

            attendance = await self.scrape_attendance()
            exam_marks = await self.scrape_exam_marks()
            sgpa_cgpa = await self.scrape_sgpa_cgpa()

            return SyncResult(
                attendance=attendance.subjects,
                exam_marks=exam_marks,
                sgpa_cgpa=sgpa_cgpa,
                student_info=attendance.student_info,
            )
        except Exception as e:
            logger.error(f"Full sync failed: {e}")
            raise
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        """Release the browser session. Safe to call more than once."""
        try:
            await self.driver.cleanup()
            logger.info("WebKiosk scraper cleaned up")
        except Exception as e:
            logger.error(f"Error during WebKiosk scraper cleanup: {e}")
        finally:
            self.logged_in = False
            self.sequencer.state = LoginState.NOT_STARTED
