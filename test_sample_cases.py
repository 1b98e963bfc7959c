"""Tests for sample case loading."""

from pathlib import Path

import pytest

from caseflow.engine.kpis import get_dashboard_kpis
from caseflow.engine.transitions import is_case_ready_for_completion, is_case_ready_for_in_progress
from caseflow.models.case import Stage
from caseflow.storage.sample_cases import build_repository, load_sample_cases
from caseflow.utils.config import Config, StorageConfig
from caseflow.utils.errors import ErrorType, SampleDataError


SAMPLE_PATH = str(Path(__file__).parent / "data" / "sample_cases" / "cases.yaml")


def _config(path, load=True):
    config = Config.default()
    config.storage = StorageConfig(sample_cases_path=path, load_sample_cases=load)
    return config


def test_bundled_sample_cases_cover_every_stage():
    cases = load_sample_cases(SAMPLE_PATH)
    assert len(cases) == 5
    assert {case.stage for case in cases} == set(Stage)


def test_bundled_draft_is_ready_to_start():
    cases = {case.id: case for case in load_sample_cases(SAMPLE_PATH)}
    assert is_case_ready_for_in_progress(cases["case-001"]) is False
    assert is_case_ready_for_in_progress(cases["case-002"]) is True
    assert is_case_ready_for_completion(cases["case-003"]) is True


def test_build_repository_loads_samples():
    repo = build_repository(_config(SAMPLE_PATH))
    assert len(repo) == 5
    assert repo.find_by_license_plate("sv98765").id == "case-003"
    assert [c.id for c in repo.get_awaiting_invoice_cases()] == ["case-003"]
    assert [c.id for c in repo.get_on_hold_cases()] == ["case-004"]
    assert get_dashboard_kpis(repo.list()).active_jobs == 4


def test_build_repository_can_skip_samples():
    assert len(build_repository(_config(SAMPLE_PATH, load=False))) == 0


def test_missing_sample_file_starts_empty(tmp_path):
    repo = build_repository(_config(str(tmp_path / "none.yaml")))
    assert len(repo) == 0


def test_missing_sample_file_raises_on_direct_load(tmp_path):
    with pytest.raises(SampleDataError) as exc_info:
        load_sample_cases(str(tmp_path / "none.yaml"))
    assert exc_info.value.context.error_type == ErrorType.SAMPLE_CASES_NOT_FOUND


@pytest.mark.parametrize("text", [
    "cases: [\n",
    "cases: 12\n",
    "cases:\n  - caseNumber: no-id\n",
])
def test_malformed_sample_file_is_raised(tmp_path, text):
    path = tmp_path / "cases.yaml"
    path.write_text(text)
    with pytest.raises(SampleDataError) as exc_info:
        build_repository(_config(str(path)))
    assert exc_info.value.context.error_type == ErrorType.SAMPLE_CASES_INVALID


def test_plain_list_file(tmp_path):
    path = tmp_path / "cases.yaml"
    path.write_text("- id: a\n- id: b\n  stage: finished\n")
    cases = load_sample_cases(str(path))
    assert [c.id for c in cases] == ["a", "b"]
    assert cases[1].stage == Stage.FINISHED
