"""
Login utilities for the WebKiosk portal.

This module drives the portal's student login form (role selection, the
enrollment/date-of-birth/password fields and the markup CAPTCHA) and decides
whether the login worked. The portal never says so plainly, so the outcome is
read from the final page through an ordered table of rules.
"""

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from config import (
    WEBKIOSK_BASE_URL, WEBKIOSK_LOGIN_URL, DEFAULT_SETTINGS,
    LOGIN_FORM_SELECTOR, USER_TYPE_SELECTOR, STUDENT_USER_TYPE,
    ENROLLMENT_SELECTOR, DOB_SELECTOR, PASSWORD_SELECTOR,
    CAPTCHA_TEXT_SELECTORS, CAPTCHA_INPUT_SELECTOR, SUBMIT_SELECTOR,
    SUCCESS_URL_PATTERNS, SUCCESS_CONTENT_KEYWORDS, LOGIN_ERROR_PHRASES
)
from models import Credentials

logger = logging.getLogger("login_utils")

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


class LoginState(Enum):
    """States of the login sequence."""
    NOT_STARTED = "not_started"
    FORM_LOCATED = "form_located"
    FIELDS_FILLED = "fields_filled"
    SUBMITTED = "submitted"
    SUCCESS = "success"
    FAILURE = "failure"


def clean_captcha_text(text: Optional[str]) -> str:
    """Strip everything but letters and digits from the CAPTCHA text."""
    return _NON_ALNUM.sub("", text or "")


def visible_text(html: str) -> str:
    """Text a user would see on the page, without scripts and styles."""
    soup = BeautifulSoup(html or "", "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return " ".join(soup.get_text(" ").split())


class PageSnapshot:
    """The final page state a login outcome is classified from."""

    def __init__(self, url: str, title: str = "", text: str = "", html: str = ""):
        self.url = url or ""
        self.title = title or ""
        self.text = text or ""
        self.html = html or ""

    @classmethod
    def from_html(cls, url: str, title: str, html: str) -> "PageSnapshot":
        return cls(url=url, title=title, text=visible_text(html), html=html)


class LoginRule:
    """One row of the outcome table: a predicate and the verdict it implies."""

    def __init__(self, name: str, predicate: Callable[[PageSnapshot], bool], verdict: bool):
        self.name = name
        self.predicate = predicate
        self.verdict = verdict

    def __repr__(self) -> str:
        return f"LoginRule({self.name!r} -> {'success' if self.verdict else 'failure'})"


def _normalize_url(url: str) -> str:
    return (url or "").strip().rstrip("/").lower()


class LoginOutcomeClassifier:
    """
    Classify a post-submit page as a successful or failed login.

    Rules are evaluated in order and the first match wins. Negative rules come
    first, so an error signal overrides any positive evidence; a page matching
    nothing is a failure.
    """

    def __init__(self, base_url: str = WEBKIOSK_BASE_URL, login_url: str = WEBKIOSK_LOGIN_URL,
                 success_url_patterns: Optional[List[str]] = None,
                 success_keywords: Optional[List[str]] = None,
                 error_phrases: Optional[List[str]] = None):
        self.login_urls = {_normalize_url(base_url), _normalize_url(login_url)}
        self.success_url_patterns = [p.lower() for p in (success_url_patterns or SUCCESS_URL_PATTERNS)]
        self.success_keywords = [k.lower() for k in (success_keywords or SUCCESS_CONTENT_KEYWORDS)]
        self.error_phrases = list(error_phrases or LOGIN_ERROR_PHRASES)
        self.rules = [
            LoginRule("still_on_login_page", self.is_still_on_login_page, False),
            LoginRule("error_message", self.has_error_message, False),
            LoginRule("logged_in_url", self.has_logged_in_url, True),
            LoginRule("logged_in_content", self.has_logged_in_content, True),
        ]

    def is_still_on_login_page(self, snapshot: PageSnapshot) -> bool:
        return _normalize_url(snapshot.url) in self.login_urls

    def has_error_message(self, snapshot: PageSnapshot) -> bool:
        # Raw markup: the portal reports rejections through alert() scripts
        content = snapshot.html or snapshot.text
        return any(phrase in content for phrase in self.error_phrases)

    def has_logged_in_url(self, snapshot: PageSnapshot) -> bool:
        url = snapshot.url.lower()
        return any(pattern in url for pattern in self.success_url_patterns)

    def has_logged_in_content(self, snapshot: PageSnapshot) -> bool:
        text = snapshot.text.lower()
        title = snapshot.title.lower()
        return any(keyword in text or keyword in title for keyword in self.success_keywords)

    def classify(self, snapshot: PageSnapshot) -> Tuple[bool, str]:
        """
        Run the rule table against a page.

        Returns:
            Tuple of (success, name of the deciding rule)
        """
        for rule in self.rules:
            if rule.predicate(snapshot):
                return rule.verdict, rule.name
        return False, "no_signal"


class LoginResult:
    """Outcome of a login attempt. Truthy only on success."""

    def __init__(self, success: bool, state: LoginState, reason: str = "",
                 diagnostics: Optional[Dict[str, Any]] = None):
        self.success = success
        self.state = state
        self.reason = reason
        self.diagnostics = diagnostics or {}

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        return f"LoginResult(success={self.success}, state={self.state.value}, reason={self.reason!r})"


def find_error_context(text: str, keywords: Optional[List[str]] = None) -> Optional[str]:
    """Text around the first error keyword on the page, for diagnostics."""
    for keyword in keywords or ["Invalid", "Error", "Failed", "Incorrect", "Please Input valid"]:
        index = text.find(keyword)
        if index != -1:
            return text[max(0, index - 50):index + 150]
    return None


def find_script_alerts(html: str) -> List[str]:
    """Inline scripts that raise alerts, which is how the portal reports some errors."""
    soup = BeautifulSoup(html or "", "html.parser")
    alerts = []
    for script in soup.find_all("script"):
        source = script.string or script.get_text()
        if source and "alert" in source:
            alerts.append(source.strip()[:200])
    return alerts


def list_forms(html: str) -> List[Dict[str, Optional[str]]]:
    """Inventory of the forms on a page."""
    soup = BeautifulSoup(html or "", "html.parser")
    return [
        {
            "name": form.get("name"),
            "action": form.get("action"),
            "method": form.get("method"),
            "id": form.get("id"),
        }
        for form in soup.find_all("form")
    ]


class LoginSequencer:
    """
    Drive the portal login form on an initialized session.

    The sequence never raises: every problem ends in a failed LoginResult and
    the details go to the log and the result diagnostics.
    """

    def __init__(self, driver, base_url: str = WEBKIOSK_BASE_URL,
                 login_url: str = WEBKIOSK_LOGIN_URL,
                 classifier: Optional[LoginOutcomeClassifier] = None,
                 role_select_delay: float = DEFAULT_SETTINGS['role_select_delay'],
                 redirect_retry_delay: float = DEFAULT_SETTINGS['redirect_retry_delay'],
                 navigation_timeout: float = DEFAULT_SETTINGS['login_navigation_timeout']):
        """
        Args:
            driver: SessionDriver (or compatible) owning the page
            base_url: Portal base URL, where the login form lives
            login_url: Portal login URL
            classifier: Outcome classifier (defaults to one built for the URLs)
            role_select_delay: Pause in seconds after selecting the user type
            redirect_retry_delay: Pause in seconds after re-navigating to the form
            navigation_timeout: Timeout in seconds for the post-submit navigation
        """
        self.driver = driver
        self.base_url = base_url
        self.login_url = login_url
        self.classifier = classifier or LoginOutcomeClassifier(base_url, login_url)
        self.role_select_delay = role_select_delay
        self.redirect_retry_delay = redirect_retry_delay
        self.navigation_timeout = navigation_timeout
        self.state = LoginState.NOT_STARTED

    async def login(self, credentials: Credentials) -> LoginResult:
        """
        Log in to the portal.

        Args:
            credentials: Enrollment number, date of birth and password

        Returns:
            LoginResult; truthy if the portal accepted the login
        """
        self.state = LoginState.NOT_STARTED
        logger.info(f"Attempting login for {credentials.enrollment_number}")

        try:
            if not await self._locate_form():
                html = await self.driver.content()
                forms = list_forms(html)
                logger.error("Login form not found on the page")
                logger.info(f"Page content (first 1000 chars): {html[:1000]}")
                logger.info(f"Forms found: {forms}")
                await self.driver.save_snapshot("login_form_missing")
                return self._fail("Login form not found on the page", {
                    "url": self.driver.url,
                    "forms": forms,
                })

            await self._fill_fields(credentials)
            await self._submit()
            return await self._classify(credentials)
        except Exception as e:
            logger.error(f"Login error for {credentials.enrollment_number}: {e}")
            return self._fail(f"Login error: {e}", {"url": self.driver.url})

    async def _has_login_form(self) -> bool:
        return (await self.driver.has_selector(LOGIN_FORM_SELECTOR)
                and await self.driver.has_selector(USER_TYPE_SELECTOR)
                and await self.driver.has_selector(ENROLLMENT_SELECTOR))

    async def _locate_form(self) -> bool:
        await self.driver.navigate(self.base_url, timeout=self.navigation_timeout)
        logger.info(f"Initial page - Title: {await self.driver.title()}, URL: {self.driver.url}")

        if not await self._has_login_form():
            # The portal sometimes lands on a post-action page instead of the form
            logger.info("Login form not on the landing page, navigating back to the base URL...")
            await self.driver.navigate(self.base_url, timeout=self.navigation_timeout)
            await self.driver.settle(self.redirect_retry_delay)
            logger.info(f"After redirect - Title: {await self.driver.title()}, URL: {self.driver.url}")
            if not await self._has_login_form():
                return False

        self.state = LoginState.FORM_LOCATED
        logger.info("Login form found, proceeding with login...")
        return True

    async def _fill_fields(self, credentials: Credentials) -> None:
        await self.driver.select_option(USER_TYPE_SELECTOR, STUDENT_USER_TYPE)
        logger.info("Selected Student user type")

        # Fields below are rendered by the portal's script after the role changes
        await self.driver.settle(self.role_select_delay)

        await self.driver.fill(ENROLLMENT_SELECTOR, credentials.enrollment_number)
        logger.info(f"Filled enrollment number: {credentials.enrollment_number}")
        await self.driver.fill(DOB_SELECTOR, credentials.date_of_birth)
        logger.info("Filled date of birth")
        await self.driver.fill(PASSWORD_SELECTOR, credentials.password)
        logger.info("Filled password")

        captcha = await self._read_captcha()
        if captcha:
            logger.info(f"Extracted captcha: \"{captcha}\"")
            await self.driver.fill(CAPTCHA_INPUT_SELECTOR, captcha)
            logger.info("Filled captcha")
        else:
            logger.warning("Could not extract captcha text, submitting without it")

        self.state = LoginState.FIELDS_FILLED

    async def _read_captcha(self) -> str:
        for selector in CAPTCHA_TEXT_SELECTORS:
            try:
                text = await self.driver.text_of(selector)
            except Exception as e:
                logger.warning(f"Could not read captcha from {selector}: {e}")
                continue
            if text is not None:
                return clean_captcha_text(text)
        return ""

    async def _submit(self) -> None:
        await self.driver.save_snapshot("login_form_filled")
        navigated = await self.driver.click_and_wait(SUBMIT_SELECTOR, timeout=self.navigation_timeout)
        logger.info(f"Clicked submit button (navigation completed: {navigated})")
        self.state = LoginState.SUBMITTED

    async def _classify(self, credentials: Credentials) -> LoginResult:
        html = await self.driver.content()
        snapshot = PageSnapshot.from_html(self.driver.url, await self.driver.title(), html)
        logger.info(f"After login attempt - URL: {snapshot.url}, Title: {snapshot.title}")

        success, rule = self.classifier.classify(snapshot)
        if success:
            self.state = LoginState.SUCCESS
            logger.info(f"Login successful for {credentials.enrollment_number} ({rule})")
            logger.info(f"Redirected to: {snapshot.url}")
            return LoginResult(True, self.state, rule, {"url": snapshot.url, "title": snapshot.title})

        diagnostics = {
            "url": snapshot.url,
            "title": snapshot.title,
            "snippet": html[:500],
            "alerts": find_script_alerts(html),
            "error_context": find_error_context(snapshot.text),
        }
        logger.error(f"Login failed for {credentials.enrollment_number} ({rule})")
        logger.error(f"Final URL: {snapshot.url}, Title: {snapshot.title}")
        logger.debug(f"Page content (first 500 chars): {diagnostics['snippet']}")
        if diagnostics["alerts"] or diagnostics["error_context"]:
            logger.error(f"Error messages found: {diagnostics['alerts']} {diagnostics['error_context'] or ''}")
        await self.driver.save_snapshot("login_failed")
        return self._fail(rule, diagnostics)

    def _fail(self, reason: str, diagnostics: Optional[Dict[str, Any]] = None) -> LoginResult:
        self.state = LoginState.FAILURE
        return LoginResult(False, self.state, reason, diagnostics)
