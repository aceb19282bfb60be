from __future__ import annotations

import argparse
import sys
from datetime import date

from hms import services
from hms.auth_service import ensure_accounts, get_account, set_active, set_password
from hms.clinic import Clinic
from hms.config import setup_logging
from hms.db import init_db
from hms.exceptions import HmsError
from hms.login import resolve_identity
from hms.roles import PANEL_TITLES
from hms.seed import seed_base

LIST_ENTITIES = ["patients", "clinicians", "staff", "appointments", "prescriptions", "referrals", "facilities"]


def _clinic(args: argparse.Namespace) -> Clinic:
    return Clinic.open(args.data_dir)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def _username(args: argparse.Namespace) -> str:
    identity = resolve_identity(_clinic(args), args.identifier)
    return identity.user_id if identity else args.identifier


def cmd_init(args: argparse.Namespace) -> None:
    clinic = Clinic.open(args.data_dir)
    written = seed_base(clinic.data_dir, overwrite=args.force)
    clinic.reload()
    created = ensure_accounts(clinic)
    print(f"Sample data: {len(written)} file(s) written in {clinic.data_dir}")
    print(f"Accounts created: {created}")


def cmd_list(args: argparse.Namespace) -> None:
    clinic = _clinic(args)
    if args.entity == "patients":
        for p in clinic.patients.get_all():
            print(f"{p.patient_id} | {p.last_name} {p.first_name} | NHS {p.nhs_number or '-'} | {p.email or '-'}")
    elif args.entity == "clinicians":
        for c in clinic.clinicians.get_all():
            print(f"{c.clinician_id} | {c.full_name} | {c.title} | {c.speciality}")
    elif args.entity == "staff":
        for s in clinic.staff.get_all():
            print(f"{s.staff_id} | {s.full_name} | {s.role} | {s.department}")
    elif args.entity == "appointments":
        for a in clinic.appointments.get_all():
            print(f"{a.appointment_id} | {a.appointment_date} {a.appointment_time} | {a.patient_id} -> {a.clinician_id} | {a.status}")
    elif args.entity == "prescriptions":
        for rx in clinic.prescriptions.get_all():
            print(f"{rx.prescription_id} | {rx.patient_id} | {rx.medication_name} {rx.dosage} | {rx.status}")
    elif args.entity == "referrals":
        for r in clinic.referrals.get_all():
            print(f"{r.referral_id} | {r.patient_id} | {r.urgency_level} | {r.referral_reason} | {r.status}")
    elif args.entity == "facilities":
        for f in clinic.facilities.get_all():
            print(f"{f.facility_id} | {f.facility_name} ({f.facility_type})")


def cmd_login_check(args: argparse.Namespace) -> None:
    identity = resolve_identity(_clinic(args), args.identifier)
    if identity is None:
        print(f"Not recognised: {args.identifier}")
        raise SystemExit(1)
    print(f"{identity.user_id} | {identity.name} | {identity.role.value}")
    print("Panels: " + ", ".join(PANEL_TITLES[p] for p in identity.panels))
    account = get_account(identity.user_id)
    if account is None:
        print("Account: missing (run `hms init`)")
    else:
        print("Account: " + ("active" if account.is_active else "disabled"))


def cmd_add_patient(args: argparse.Namespace) -> None:
    p = services.register_patient(
        _clinic(args),
        first_name=args.first_name,
        last_name=args.last_name,
        date_of_birth=args.dob,
        nhs_number=args.nhs_number,
        email=args.email,
        phone_number=args.phone,
        gp_surgery_id=args.surgery,
    )
    print(f"Patient created: {p.patient_id}")


def cmd_delete_patient(args: argparse.Namespace) -> None:
    result = services.delete_patient(_clinic(args), args.patient_id, cascade=not args.no_cascade)
    if not result.ok:
        print(f"Patient {args.patient_id} not found.")
        raise SystemExit(1)
    print(
        f"Deleted {args.patient_id} "
        f"({result.appointments_removed} appointments, {result.prescriptions_removed} prescriptions)."
    )


def cmd_book(args: argparse.Namespace) -> None:
    a = services.book_appointment(
        _clinic(args),
        patient_id=args.patient_id,
        clinician_id=args.clinician_id,
        facility_id=args.facility_id,
        appointment_date=args.date,
        appointment_time=args.time,
        duration_minutes=args.duration,
        appointment_type=args.type,
        reason_for_visit=args.reason,
    )
    print(f"Appointment booked: {a.appointment_id}")


def cmd_cancel(args: argparse.Namespace) -> None:
    ok = services.cancel_appointment(_clinic(args), args.appointment_id)
    print("Cancelled." if ok else "Not found.")
    if not ok:
        raise SystemExit(1)


def cmd_appointments(args: argparse.Namespace) -> None:
    day = args.date or date.today()
    rows = services.appointments_on_flat(_clinic(args), day)
    if not rows:
        print(f"No appointments on {day.isoformat()}.")
        return
    for r in rows:
        print(f"{r['appointment_time']} | {r['patient_name']} | {r['clinician_name']} | {r['facility_name']} | {r['status']}")


def cmd_set_password(args: argparse.Namespace) -> None:
    username = _username(args)
    if not set_password(username, args.password):
        print(f"No account for {args.identifier}.")
        raise SystemExit(1)
    print(f"Password updated for {username}.")


def cmd_set_active(args: argparse.Namespace) -> None:
    username = _username(args)
    if not set_active(username, args.active):
        print(f"No account for {args.identifier}.")
        raise SystemExit(1)
    print(f"Account {username} " + ("enabled." if args.active else "disabled."))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hms", description="Clinic records CLI")
    p.add_argument("--data-dir", default=None, help="Directory holding the CSV files (default: HMS_DATA_DIR)")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Write sample CSV data and create login accounts")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing CSV files")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="List records")
    p_list.add_argument("entity", choices=LIST_ENTITIES)
    p_list.set_defaults(func=cmd_list)

    p_who = sub.add_parser("login-check", help="Show which identity and panels an identifier maps to")
    p_who.add_argument("identifier")
    p_who.set_defaults(func=cmd_login_check)

    p_addp = sub.add_parser("add-patient", help="Register a patient")
    p_addp.add_argument("--first-name", required=True)
    p_addp.add_argument("--last-name", required=True)
    p_addp.add_argument("--dob", default="", help="YYYY-MM-DD")
    p_addp.add_argument("--nhs-number", default="")
    p_addp.add_argument("--email", default="")
    p_addp.add_argument("--phone", default="")
    p_addp.add_argument("--surgery", default="", help="GP surgery facility ID")
    p_addp.set_defaults(func=cmd_add_patient)

    p_delp = sub.add_parser("delete-patient", help="Delete a patient and their appointments, prescriptions and record")
    p_delp.add_argument("patient_id")
    p_delp.add_argument("--no-cascade", action="store_true", help="Remove only the patient row")
    p_delp.set_defaults(func=cmd_delete_patient)

    p_book = sub.add_parser("book", help="Book an appointment")
    p_book.add_argument("--patient-id", required=True)
    p_book.add_argument("--clinician-id", required=True)
    p_book.add_argument("--facility-id", default="")
    p_book.add_argument("--date", required=True, help="YYYY-MM-DD")
    p_book.add_argument("--time", required=True, help="HH:MM")
    p_book.add_argument("--duration", type=int, default=15)
    p_book.add_argument("--type", default="Routine Consultation")
    p_book.add_argument("--reason", default="")
    p_book.set_defaults(func=cmd_book)

    p_cancel = sub.add_parser("cancel", help="Cancel (remove) an appointment")
    p_cancel.add_argument("appointment_id")
    p_cancel.set_defaults(func=cmd_cancel)

    p_day = sub.add_parser("appointments", help="Appointments of one day, as on the dashboard")
    p_day.add_argument("--date", type=_iso_date, default=None, help="YYYY-MM-DD (default: today)")
    p_day.set_defaults(func=cmd_appointments)

    p_pwd = sub.add_parser("set-password", help="Change the password of a login account")
    p_pwd.add_argument("identifier")
    p_pwd.add_argument("password")
    p_pwd.set_defaults(func=cmd_set_password)

    p_off = sub.add_parser("disable-account", help="Block logins for an account")
    p_off.add_argument("identifier")
    p_off.set_defaults(func=cmd_set_active, active=False)

    p_on = sub.add_parser("enable-account", help="Allow logins again for a disabled account")
    p_on.add_argument("identifier")
    p_on.set_defaults(func=cmd_set_active, active=True)

    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()
    init_db()  # account table
    try:
        args.func(args)
    except HmsError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
