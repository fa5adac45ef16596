import pytest

from formrecords.main import run


@pytest.fixture
def no_import_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in ("TYPEFORM_TOKEN", "DATABASE_URL", "DRY_RUN", "FORM_IDS"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.mark.unit
def test_cli_returns_non_zero_for_invalid_role(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run(["--role", "bad-role", "--dry-run-startup"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "ERROR:" in captured.err
    assert "Supported roles" in captured.err


@pytest.mark.unit
@pytest.mark.parametrize("role", ["api", "importer"])
def test_cli_dry_run_startup_succeeds_for_valid_role(role: str) -> None:
    assert run(["--role", role, "--dry-run-startup"]) == 0


@pytest.mark.unit
def test_importer_without_token_is_a_configuration_error(
    no_import_env: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = run(["--role", "importer", "--dry-run"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "TYPEFORM_TOKEN" in captured.err


@pytest.mark.unit
def test_importer_without_database_is_a_configuration_error(
    no_import_env: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    no_import_env.setenv("TYPEFORM_TOKEN", "tok")

    exit_code = run(["--role", "importer"])

    assert exit_code == 2
    assert "DATABASE_URL" in capsys.readouterr().err


@pytest.mark.unit
def test_importer_upstream_failure_exits_with_fatal_code(no_import_env: pytest.MonkeyPatch) -> None:
    no_import_env.setenv("TYPEFORM_TOKEN", "tok")
    # Nothing listens on port 9; the forms API is unreachable.
    no_import_env.setenv("TYPEFORM_BASE_URL", "http://127.0.0.1:9")

    assert run(["--role", "importer", "--dry-run", "--form-ids", "F1"]) == 1
