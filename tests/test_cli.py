import pytest

from hms.auth_service import authenticate
from hms.cli import main
from hms.clinic import Clinic


def run(data_dir, *argv):
    main(["--data-dir", str(data_dir), *argv])


def test_init_writes_sample_data(tmp_path, accounts_db, capsys):
    run(tmp_path / "fresh", "init")

    out = capsys.readouterr().out
    assert "8 file(s) written" in out
    assert len(Clinic.open(tmp_path / "fresh").patients) == 4

    run(tmp_path / "fresh", "init")
    out = capsys.readouterr().out
    assert "0 file(s) written" in out
    assert "Accounts created: 0" in out


def test_list_patients(data_dir, capsys):
    run(data_dir, "list", "patients")

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("P001 | Doe John")


def test_login_check(data_dir, capsys):
    run(data_dir, "login-check", "receptionist")
    out = capsys.readouterr().out
    assert "Receptionist" in out
    assert "Panels: Dashboard, Manage Patients, Appointments" in out

    with pytest.raises(SystemExit) as exc:
        run(data_dir, "login-check", "nobody")
    assert exc.value.code == 1


def test_add_and_delete_patient(data_dir, capsys):
    run(data_dir, "add-patient", "--first-name", "Ann", "--last-name", "Lee", "--dob", "1999-09-09")
    assert "Patient created: P005" in capsys.readouterr().out

    run(data_dir, "delete-patient", "P001")
    assert "(2 appointments, 1 prescriptions)" in capsys.readouterr().out
    assert Clinic.open(data_dir).patients.find_by_id("P001") is None


def test_book_and_cancel(data_dir, capsys):
    run(data_dir, "book", "--patient-id", "P002", "--clinician-id", "C002", "--date", "2026-02-02", "--time", "08:30")
    assert "Appointment booked: A005" in capsys.readouterr().out

    run(data_dir, "cancel", "A005")
    assert "Cancelled." in capsys.readouterr().out
    with pytest.raises(SystemExit):
        run(data_dir, "cancel", "A005")


def test_book_error_exits_with_status_1(data_dir, capsys):
    with pytest.raises(SystemExit) as exc:
        run(data_dir, "book", "--patient-id", "P999", "--clinician-id", "C001", "--date", "2026-02-02", "--time", "08:30")

    assert exc.value.code == 1
    assert "Unknown patient P999" in capsys.readouterr().err


def test_appointments_of_day(data_dir, capsys):
    run(data_dir, "appointments", "--date", "2025-12-26")

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "09:00 | John Doe | David Smith | Riverside Medical Centre | Scheduled",
        "09:30 | Mary Jones | David Smith | Riverside Medical Centre | Scheduled",
    ]


def test_set_password(accounts, capsys):
    run(accounts.data_dir, "set-password", "john.doe@example.com", "s3cret")

    assert "Password updated for P001." in capsys.readouterr().out
    assert authenticate(accounts, "P001", "s3cret").user_id == "P001"


def test_appointments_rejects_bad_date(data_dir, capsys):
    with pytest.raises(SystemExit) as exc:
        run(data_dir, "appointments", "--date", "26/12/2025")

    assert exc.value.code == 2
    assert "expected YYYY-MM-DD" in capsys.readouterr().err


def test_disable_and_enable_account(accounts, capsys):
    run(accounts.data_dir, "login-check", "ST001")
    assert "Account: active" in capsys.readouterr().out

    run(accounts.data_dir, "disable-account", "l.green@riverside.nhs.uk")
    assert "Account ST001 disabled." in capsys.readouterr().out
    assert authenticate(accounts, "ST001", "12345") is None
    run(accounts.data_dir, "login-check", "ST001")
    assert "Account: disabled" in capsys.readouterr().out

    run(accounts.data_dir, "enable-account", "ST001")
    assert authenticate(accounts, "ST001", "12345").user_id == "ST001"
    with pytest.raises(SystemExit) as exc:
        run(accounts.data_dir, "disable-account", "nobody")
    assert exc.value.code == 1
