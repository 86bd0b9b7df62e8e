import json

import pandas as pd
import pytest

import scrape_portal
from session_driver import SessionLaunchError

RESULTS = {
    "attendance": {
        "subjects": [{
            "subjectId": "18B11CI311",
            "name": "DATA STRUCTURES",
            "attendance": {
                "lectures": {"attended": 64, "total": 80},
                "tutorials": {"attended": 72, "total": 80},
                "practicals": {"attended": 0, "total": 0},
            },
            "percentage": 85,
        }],
        "studentInfo": {},
        "tableFound": True,
    },
    "examMarks": [],
    "sgpaCgpa": [{"semester": 1, "sgpa": 8.57, "cgpa": 8.57, "credits": 19, "subjects": []}],
}

ARGS = ["--enrollment", "211B123", "--dob", "01-01-2003", "--password", "secret"]


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(scrape_portal, "configure_logging", lambda level: None)
    for name in ("WEBKIOSK_ENROLLMENT", "WEBKIOSK_DOB", "WEBKIOSK_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


def fake_run(result, seen=None):
    async def run(credentials, targets, settings):
        if seen is not None:
            seen.update(credentials=credentials, targets=targets, settings=settings)
        if isinstance(result, BaseException):
            raise result
        return result
    return run


def test_parser_defaults():
    args = scrape_portal.build_parser().parse_args(ARGS)

    assert args.targets == ["attendance", "marks", "sgpa"]
    assert args.headed is False
    assert args.timeout == 30
    assert args.log_level == "INFO"


def test_credentials_from_environment(monkeypatch):
    monkeypatch.setenv("WEBKIOSK_ENROLLMENT", "211B999")
    args = scrape_portal.build_parser().parse_args([])
    assert args.enrollment == "211B999"


def test_missing_credentials_exit():
    with pytest.raises(SystemExit) as exc_info:
        scrape_portal.main(["--enrollment", "211B123"])
    assert exc_info.value.code == 2


def test_flatten_subject():
    row = scrape_portal.flatten_subject(RESULTS["attendance"]["subjects"][0])

    assert "attendance" not in row
    assert row["lectures_attended"] == 64
    assert row["practicals_total"] == 0
    assert row["name"] == "DATA STRUCTURES"


def test_save_to_csv(tmp_path):
    path = scrape_portal.save_to_csv([{"a": 1, "b": 2}], str(tmp_path / "csv"), "out.csv")

    assert path == tmp_path / "csv" / "out.csv"
    assert pd.read_csv(path).to_dict("records") == [{"a": 1, "b": 2}]
    assert scrape_portal.save_to_csv([], str(tmp_path), "empty.csv") is None


def test_main_writes_json_and_csv(monkeypatch, tmp_path):
    seen = {}
    monkeypatch.setattr(scrape_portal, "run", fake_run(RESULTS, seen))
    output = tmp_path / "results.json"

    code = scrape_portal.main(ARGS + ["--targets", "attendance", "sgpa", "--output", str(output),
                                      "--csv-dir", "csv", "--exam-code", "2025EVESEM"])

    assert code == 0
    assert json.loads(output.read_text(encoding="utf-8")) == RESULTS
    assert (tmp_path / "csv" / "attendance.csv").exists()
    assert (tmp_path / "csv" / "sgpa_cgpa.csv").exists()
    assert not (tmp_path / "csv" / "exam_marks.csv").exists()
    assert seen["targets"] == ["attendance", "sgpa"]
    assert seen["credentials"].enrollment_number == "211B123"
    assert seen["settings"]["headless"] is True
    assert seen["settings"]["exam_code"] == "2025EVESEM"


def test_main_prints_json(monkeypatch, capsys):
    monkeypatch.setattr(scrape_portal, "run", fake_run(RESULTS))

    assert scrape_portal.main(ARGS) == 0
    assert json.loads(capsys.readouterr().out) == RESULTS


def test_main_login_failure(monkeypatch):
    monkeypatch.setattr(scrape_portal, "run", fake_run(None))
    assert scrape_portal.main(ARGS) == 1


def test_main_browser_failure(monkeypatch):
    monkeypatch.setattr(scrape_portal, "run", fake_run(SessionLaunchError("no chromium")))
    assert scrape_portal.main(ARGS + ["--headed"]) == 2
