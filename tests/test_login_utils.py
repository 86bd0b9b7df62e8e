import asyncio
import itertools

import pytest

from login_utils import (
    LoginOutcomeClassifier, LoginSequencer, LoginState, PageSnapshot, clean_captcha_text,
    find_error_context, find_script_alerts, list_forms, visible_text
)
from models import Credentials
from conftest import (
    BASE_URL, INVALID_LOGIN_PAGE, LOGIN_PAGE, LOGIN_PAGE_NO_CAPTCHA, LOGIN_URL,
    POST_ACTION_PAGE, STUDENT_HOME_PAGE, STUDENT_HOME_URL, USER_ACTION_URL, FakeDriver
)

CREDENTIALS = Credentials("211B123", "01-01-2003", "secret")
OTHER_URL = BASE_URL + "/CommonFiles/UserAction.jsp"


@pytest.fixture
def classifier():
    return LoginOutcomeClassifier(BASE_URL, LOGIN_URL)


def snapshot_for(on_login_page, error_text, success_url, success_text):
    url = STUDENT_HOME_URL if success_url else OTHER_URL
    if on_login_page:
        url = LOGIN_URL
    parts = []
    if error_text:
        parts.append("<p>Invalid Password</p>")
    if success_text:
        parts.append("<p>Welcome back</p>")
    return PageSnapshot.from_html(url, "", "<html><body>" + "".join(parts) + "</body></html>")


@pytest.mark.parametrize("on_login_page, error_text, success_url, success_text",
                         list(itertools.product([False, True], repeat=4)))
def test_negative_signals_always_win(classifier, on_login_page, error_text, success_url, success_text):
    success, _ = classifier.classify(snapshot_for(on_login_page, error_text, success_url, success_text))

    if on_login_page or error_text:
        assert success is False
    else:
        assert success is (success_url or success_text)


def test_rule_names(classifier):
    assert classifier.classify(PageSnapshot(LOGIN_URL)) == (False, "still_on_login_page")
    assert classifier.classify(PageSnapshot(BASE_URL)) == (False, "still_on_login_page")
    assert classifier.classify(PageSnapshot(OTHER_URL)) == (False, "no_signal")
    assert classifier.classify(PageSnapshot(STUDENT_HOME_URL)) == (True, "logged_in_url")
    assert classifier.classify(PageSnapshot(OTHER_URL, title="Student Portal")) == (True, "logged_in_content")


def test_error_phrase_beats_logged_in_url(classifier):
    snapshot = PageSnapshot.from_html(STUDENT_HOME_URL, "Welcome", "<p>Incorrect password</p>")
    assert classifier.classify(snapshot) == (False, "error_message")


def test_alert_script_error_beats_welcome_text(classifier):
    html = "<script>alert('Invalid Password');</script><p>Welcome to WebKiosk</p>"
    snapshot = PageSnapshot.from_html(OTHER_URL, "", html)

    assert classifier.classify(snapshot) == (False, "error_message")
    assert find_script_alerts(html) == ["alert('Invalid Password');"]
    assert "Invalid" not in snapshot.text


def test_visible_text_drops_scripts_and_styles():
    html = "<style>p {}</style><p>Hello <b>there</b></p><script>var x;</script>"
    assert visible_text(html) == "Hello there"


def test_clean_captcha_text():
    assert clean_captcha_text(" lR ShR!\n") == "lRShR"
    assert clean_captcha_text(None) == ""


def test_find_error_context():
    assert "Invalid Password" in find_error_context("xx Invalid Password. Try again")
    assert find_error_context("all good") is None


def test_list_forms():
    assert list_forms(LOGIN_PAGE) == [
        {"name": "LoginForm", "action": "CommonFiles/UserAction.jsp", "method": "post", "id": None}
    ]


def run_login(driver):
    sequencer = LoginSequencer(driver, base_url=BASE_URL, login_url=LOGIN_URL,
                               role_select_delay=0.5, redirect_retry_delay=2.0)
    return sequencer, asyncio.run(sequencer.login(CREDENTIALS))


def test_successful_login_fills_form_in_order():
    driver = FakeDriver(pages={BASE_URL: LOGIN_PAGE, STUDENT_HOME_URL: STUDENT_HOME_PAGE})

    sequencer, result = run_login(driver)

    assert result
    assert result.state is LoginState.SUCCESS
    assert result.reason == "logged_in_url"
    assert sequencer.state is LoginState.SUCCESS
    assert driver.calls == [
        ("navigate", BASE_URL),
        ("select_option", 'select[name="UserType"]', "S"),
        ("settle", 0.5),
        ("fill", 'input[name="MemberCode"]', "211B123"),
        ("fill", 'input[name="DATE1"]', "01-01-2003"),
        ("fill", 'input[name="Password"]', "secret"),
        ("fill", 'input[name="txtcap"]', "lRShR"),
        ("click", 'input[name="BTNSubmit"]'),
    ]


def test_missing_captcha_still_submits():
    driver = FakeDriver(pages={BASE_URL: LOGIN_PAGE_NO_CAPTCHA, STUDENT_HOME_URL: STUDENT_HOME_PAGE})

    _, result = run_login(driver)

    assert result
    fills = [call[1] for call in driver.calls if call[0] == "fill"]
    assert 'input[name="txtcap"]' not in fills
    assert ("click", 'input[name="BTNSubmit"]') in driver.calls


def test_redirected_landing_is_retried_once():
    driver = FakeDriver(
        pages={BASE_URL: LOGIN_PAGE, USER_ACTION_URL: POST_ACTION_PAGE, STUDENT_HOME_URL: STUDENT_HOME_PAGE},
        landings=[USER_ACTION_URL],
    )

    _, result = run_login(driver)

    assert result
    assert driver.navigations() == [BASE_URL, BASE_URL]
    assert ("settle", 2.0) in driver.calls


def test_form_missing_after_retry_fails_without_submitting():
    driver = FakeDriver(pages={BASE_URL: "<html><body>Maintenance</body></html>"})

    sequencer, result = run_login(driver)

    assert not result
    assert result.state is LoginState.FAILURE
    assert result.reason == "Login form not found on the page"
    assert result.diagnostics["forms"] == []
    assert driver.navigations() == [BASE_URL, BASE_URL]
    assert not any(call[0] == "click" for call in driver.calls)


def test_rejected_login_collects_diagnostics():
    driver = FakeDriver(pages={BASE_URL: LOGIN_PAGE, USER_ACTION_URL: INVALID_LOGIN_PAGE},
                        submit_url=USER_ACTION_URL)

    _, result = run_login(driver)

    assert not result
    assert result.reason == "error_message"
    assert result.diagnostics["url"] == USER_ACTION_URL
    assert "Invalid Password" in result.diagnostics["error_context"]


def test_bounced_back_to_login_page_fails():
    driver = FakeDriver(pages={BASE_URL: LOGIN_PAGE}, submit_url=BASE_URL)

    _, result = run_login(driver)

    assert not result
    assert result.reason == "still_on_login_page"


def test_driver_error_becomes_failed_result():
    driver = FakeDriver(pages={BASE_URL: LOGIN_PAGE})
    driver.fail_on("fill", RuntimeError("element detached"))

    sequencer, result = run_login(driver)

    assert not result
    assert result.reason == "Login error: element detached"
    assert sequencer.state is LoginState.FAILURE
