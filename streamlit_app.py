from __future__ import annotations

import base64
import json
import os
from datetime import date, datetime, timezone

import requests
import streamlit as st

st.set_page_config(page_title="Clinic Records", layout="wide")

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

APPOINTMENT_STATUSES = ["Scheduled", "Completed", "Cancelled", "No Show"]
STAFF_ROLE_FILTERS = ["All", "Nurse", "Receptionist", "Consultant", "Admin", "Practice Manager"]
URGENCY_LEVELS = ["Routine", "Urgent", "Non-urgent", "Emergency"]


# JWT helpers (UI only, no signature check)

def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def jwt_payload(token: str) -> dict:
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return {}
        payload = json.loads(_b64url_decode(parts[1]).decode("utf-8"))
        return payload if isinstance(payload, dict) else {}
    except (ValueError, UnicodeDecodeError):
        return {}


def jwt_is_expired(token: str) -> bool:
    exp = jwt_payload(token).get("exp")
    try:
        exp_int = int(exp)
    except (TypeError, ValueError):
        return False

    now = int(datetime.now(tz=timezone.utc).timestamp())
    return now >= (exp_int - 5)


# HTTP client (JWT)

def _headers(token: str | None) -> dict:
    return {"Authorization": f"Bearer {token}"} if token else {}


def _check(r: requests.Response) -> None:
    if r.status_code == 401:
        raise PermissionError("401 Unauthorized (token invalid or expired, or backend restarted).")
    r.raise_for_status()


def api_get(path: str, token: str | None = None, params: dict | None = None) -> dict | list:
    r = requests.get(f"{API_BASE}{path}", headers=_headers(token), params=params, timeout=10)
    _check(r)
    return r.json()


def api_post(path: str, payload: dict, token: str | None = None) -> dict:
    r = requests.post(f"{API_BASE}{path}", headers=_headers(token), json=payload, timeout=10)
    _check(r)
    return r.json()


def api_put(path: str, payload: dict, token: str | None = None) -> dict:
    r = requests.put(f"{API_BASE}{path}", headers=_headers(token), json=payload, timeout=10)
    _check(r)
    return r.json()


def api_delete(path: str, token: str | None = None, params: dict | None = None) -> dict:
    r = requests.delete(f"{API_BASE}{path}", headers=_headers(token), params=params, timeout=10)
    _check(r)
    return r.json()


def api_login(username: str, password: str) -> str:
    # OAuth2PasswordRequestForm => x-www-form-urlencoded
    r = requests.post(
        f"{API_BASE}/api/auth/login",
        data={"username": username, "password": password},
        timeout=10,
    )
    r.raise_for_status()
    return r.json()["access_token"]


def error_text(e: Exception) -> str:
    """Message of an API error, using the `detail` field when the backend sent one."""
    if isinstance(e, requests.HTTPError) and e.response is not None:
        try:
            return str(e.response.json().get("detail") or e)
        except ValueError:
            return str(e)
    return str(e)


def show_error(e: Exception) -> None:
    if isinstance(e, PermissionError):
        st.session_state["auth_error"] = str(e)
        st.error("Session not valid. Press Logout and log in again.")
    else:
        st.error(error_text(e))


def is_logged_in() -> bool:
    token = st.session_state.get("token")
    return bool(token) and isinstance(token, str)


def do_logout() -> None:
    for key in ("token", "me", "auth_error"):
        st.session_state.pop(key, None)
    st.rerun()


# Sidebar login

with st.sidebar:
    st.header("Login")

    if not is_logged_in():
        u = st.text_input("ID, email or name", key="login_user")
        p = st.text_input("Password", type="password", key="login_pass")

        if st.button("Login", key="login_btn"):
            try:
                new_token = api_login(u.strip(), p)
                st.session_state["token"] = new_token
                st.session_state["me"] = api_get("/api/me", token=new_token)
                st.session_state.pop("auth_error", None)
                st.rerun()
            except requests.HTTPError:
                st.error("Invalid credentials.")
            except (requests.RequestException, PermissionError) as e:
                st.error(str(e))
    else:
        me = st.session_state.get("me") or {}
        st.write(f"User: **{me.get('name', '?')}**")
        st.write(f"Role: {me.get('role', '?')}")

        if st.session_state.get("auth_error"):
            st.error(st.session_state["auth_error"])

        if st.button("Logout", key="logout_btn"):
            do_logout()

    st.divider()
    st.caption(f"API: {API_BASE}")


@st.cache_data(ttl=10)
def load_facilities(token: str) -> list[dict]:
    return api_get("/api/facilities", token=token)


@st.cache_data(ttl=10)
def load_clinicians(token: str) -> list[dict]:
    return api_get("/api/clinicians", token=token)


# Panels

def panel_dashboard(token: str) -> None:
    st.subheader("Today's appointments")
    day = st.date_input("Day", value=date.today(), key="dash_day")
    try:
        items = api_get("/api/dashboard/appointments", token=token, params={"day": day.isoformat()})
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        return

    if not items:
        st.info("No appointments for this day.")
        return
    st.metric("Appointments", len(items))
    st.dataframe(
        [
            {
                "Time": a["appointment_time"],
                "Patient": a["patient_name"],
                "Clinician": a["clinician_name"],
                "Facility": a["facility_name"],
                "Status": a["status"],
            }
            for a in items
        ],
        use_container_width=True,
    )


def panel_appointments(token: str) -> None:
    st.subheader("Appointments")

    c1, c2 = st.columns([1, 2])
    by = c1.selectbox("Filter by", ["patient_id", "patient_name", "clinician_id"], key="appt_by")
    text = c2.text_input("Search", key="appt_text")
    try:
        items = api_get("/api/appointments", token=token, params={"by": by, "text": text})
        st.dataframe(items, use_container_width=True)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        items = []

    with st.expander("Book appointment"):
        try:
            clinicians = load_clinicians(token)
            facilities = load_facilities(token)
        except (requests.RequestException, PermissionError) as e:
            show_error(e)
            return

        c1, c2 = st.columns(2)
        patient_id = c1.text_input("Patient ID", key="book_patient")
        clinician = c2.selectbox(
            "Clinician",
            options=clinicians,
            format_func=lambda c: f"{c['full_name']} ({c['title']})",
            key="book_clinician",
        )
        facility = c1.selectbox(
            "Facility", options=facilities, format_func=lambda f: f["facility_name"], key="book_facility"
        )
        day = c2.date_input("Date", value=date.today(), key="book_day")
        at = c1.time_input("Time", value=datetime.now().time().replace(second=0, microsecond=0), key="book_time")
        duration = c2.number_input("Duration (minutes)", min_value=5, max_value=240, value=15, key="book_duration")
        reason = st.text_input("Reason for visit", key="book_reason")

        if st.button("Book", key="book_submit"):
            payload = {
                "patient_id": patient_id.strip(),
                "clinician_id": clinician["clinician_id"] if clinician else "",
                "facility_id": facility["facility_id"] if facility else "",
                "appointment_date": day.isoformat(),
                "appointment_time": at.strftime("%H:%M"),
                "duration_minutes": int(duration),
                "reason_for_visit": reason,
            }
            try:
                res = api_post("/api/appointments", payload, token=token)
                st.success(f"Appointment booked: {res['appointment_id']}")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    with st.expander("Update or cancel appointment"):
        ids = [a["appointment_id"] for a in items]
        appointment_id = st.selectbox("Appointment", options=ids, key="appt_edit_id")
        new_status = st.selectbox("Status", APPOINTMENT_STATUSES, key="appt_edit_status")
        notes = st.text_input("Notes", key="appt_edit_notes")

        c1, c2 = st.columns(2)
        if c1.button("Save", key="appt_edit_submit", disabled=not ids):
            try:
                api_put(f"/api/appointments/{appointment_id}", {"status": new_status, "notes": notes or None}, token=token)
                st.success("Appointment updated.")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)
        if c2.button("Cancel appointment", key="appt_cancel", disabled=not ids):
            try:
                api_delete(f"/api/appointments/{appointment_id}", token=token)
                st.success("Appointment cancelled.")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)


def panel_medical_records(token: str) -> None:
    st.subheader("Medical records")

    patient_id = st.text_input("Patient ID", key="mr_patient").strip()
    if not patient_id:
        st.info("Enter a patient ID.")
        return

    try:
        summary = api_get(f"/api/medical-records/{patient_id}", token=token)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        return

    patient = summary["patient"]
    record = summary["medical_record"] or {}
    st.write(f"**{patient['full_name']}** | DOB {patient['date_of_birth']} | NHS {patient['nhs_number']}")

    with st.form("mr_record"):
        allergies = st.text_input("Allergies", value=record.get("allergies", ""))
        blood_type = st.text_input("Blood type", value=record.get("blood_type", ""))
        history = st.text_area("History", value=record.get("history", ""))
        if st.form_submit_button("Save record"):
            try:
                api_put(
                    f"/api/medical-records/{patient_id}",
                    {"allergies": allergies, "blood_type": blood_type, "history": history},
                    token=token,
                )
                st.success("Record saved.")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    t1, t2, t3 = st.tabs(["Appointments", "Prescriptions", "Referrals"])
    t1.dataframe(summary["appointments"], use_container_width=True)
    t2.dataframe(summary["prescriptions"], use_container_width=True)
    t3.dataframe(summary["referrals"], use_container_width=True)

    me = st.session_state.get("me") or {}
    try:
        options = api_get("/api/medical-records/options", token=token)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        options = {"medications": [], "pharmacies": []}

    with st.expander("Issue prescription"):
        clinician_id = st.text_input("Prescriber ID", value=me.get("clinician_id") or "", key="rx_clinician")
        medication = st.selectbox("Medication", options=options["medications"] or [""], key="rx_med")
        dosage = st.text_input("Dosage", key="rx_dosage")
        frequency = st.text_input("Frequency", key="rx_freq")
        pharmacy = st.selectbox("Pharmacy", options=options["pharmacies"] or [""], key="rx_pharmacy")
        instructions = st.text_area("Instructions", key="rx_notes")
        if st.button("Issue", key="rx_submit"):
            payload = {
                "clinician_id": clinician_id.strip() or None,
                "medication_name": medication,
                "dosage": dosage,
                "frequency": frequency,
                "pharmacy_name": pharmacy,
                "instructions": instructions,
            }
            try:
                res = api_post(f"/api/medical-records/{patient_id}/prescriptions", payload, token=token)
                st.success(f"Prescription {res['prescription_id']} issued ({res['file_path']}).")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    with st.expander("Refer patient"):
        try:
            clinicians = load_clinicians(token)
            facilities = load_facilities(token)
        except (requests.RequestException, PermissionError) as e:
            show_error(e)
            return
        referring_id = st.text_input("Referring clinician ID", value=me.get("clinician_id") or "", key="ref_from")
        to_clinician = st.selectbox(
            "Refer to", options=clinicians, format_func=lambda c: f"{c['full_name']} ({c['speciality']})", key="ref_to"
        )
        from_facility = st.selectbox(
            "From facility", options=facilities, format_func=lambda f: f["facility_name"], key="ref_from_fac"
        )
        to_facility = st.selectbox(
            "To facility", options=facilities, format_func=lambda f: f["facility_name"], key="ref_to_fac"
        )
        urgency = st.selectbox("Urgency", URGENCY_LEVELS, key="ref_urgency")
        reason = st.text_input("Reason", key="ref_reason")
        clinical = st.text_area("Clinical summary", key="ref_summary")
        investigations = st.text_input("Requested investigations", key="ref_inv")
        if st.button("Create referral", key="ref_submit"):
            payload = {
                "referring_clinician_id": referring_id.strip() or None,
                "referred_to_clinician_id": to_clinician["clinician_id"] if to_clinician else "",
                "referring_facility_id": from_facility["facility_id"] if from_facility else "",
                "referred_to_facility_id": to_facility["facility_id"] if to_facility else "",
                "urgency_level": urgency,
                "referral_reason": reason,
                "clinical_summary": clinical,
                "requested_investigations": investigations,
            }
            try:
                res = api_post(f"/api/medical-records/{patient_id}/referrals", payload, token=token)
                st.success(f"Referral {res['referral_id']} created ({res['letter_path']}).")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)


def panel_staff(token: str) -> None:
    st.subheader("Manage staff")

    c1, c2 = st.columns([2, 1])
    term = c1.text_input("Search", key="staff_term")
    role = c2.selectbox("Role", STAFF_ROLE_FILTERS, key="staff_role")
    try:
        items = api_get("/api/staff", token=token, params={"term": term, "role": role})
        st.dataframe(items, use_container_width=True)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        items = []

    with st.expander("Add staff member"):
        c1, c2 = st.columns(2)
        first = c1.text_input("First name", key="staff_first")
        last = c2.text_input("Last name", key="staff_last")
        staff_role = c1.text_input("Role", key="staff_new_role")
        department = c2.text_input("Department", key="staff_dept")
        email = c1.text_input("Email", key="staff_email")
        facility_id = c2.text_input("Facility ID", key="staff_fac")
        if st.button("Add", key="staff_submit"):
            payload = {
                "first_name": first, "last_name": last, "role": staff_role,
                "department": department, "email": email, "facility_id": facility_id,
            }
            try:
                res = api_post("/api/staff", payload, token=token)
                st.success(f"Staff member added: {res['staff_id']}")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    with st.expander("Edit staff member"):
        current = st.selectbox(
            "Staff",
            options=items,
            format_func=lambda s: f"{s['staff_id']} - {s['first_name']} {s['last_name']} ({s['role']})",
            key="staff_edit_id",
        )
        if current:
            with st.form(f"staff_edit_{current['staff_id']}"):
                c1, c2 = st.columns(2)
                values = {
                    "first_name": c1.text_input("First name", value=current["first_name"]),
                    "last_name": c2.text_input("Last name", value=current["last_name"]),
                    "role": c1.text_input("Role", value=current["role"]),
                    "department": c2.text_input("Department", value=current["department"]),
                    "facility_id": c1.text_input("Facility ID", value=current["facility_id"]),
                    "phone_number": c2.text_input("Phone", value=current["phone_number"]),
                    "email": c1.text_input("Email", value=current["email"]),
                    "employment_status": c2.text_input("Employment status", value=current["employment_status"]),
                    "line_manager": c1.text_input("Line manager", value=current["line_manager"]),
                    "access_level": c2.text_input("Access level", value=current["access_level"]),
                }
                if st.form_submit_button("Save staff member"):
                    try:
                        api_put(f"/api/staff/{current['staff_id']}", values, token=token)
                        st.success(f"{current['staff_id']} updated.")
                    except (requests.RequestException, PermissionError) as e:
                        show_error(e)

    with st.expander("Remove staff member"):
        ids = [s["staff_id"] for s in items]
        staff_id = st.selectbox("Staff", options=ids, key="staff_del_id")
        if st.button("Remove", key="staff_del", disabled=not ids):
            try:
                api_delete(f"/api/staff/{staff_id}", token=token)
                st.success(f"{staff_id} removed.")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    st.divider()
    clinician_section(token)


def clinician_section(token: str) -> None:
    st.subheader("Clinicians")
    try:
        clinicians = load_clinicians(token)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        return
    st.dataframe(clinicians, use_container_width=True)

    with st.expander("Add clinician"):
        c1, c2 = st.columns(2)
        payload = {
            "first_name": c1.text_input("First name", key="clin_first"),
            "last_name": c2.text_input("Last name", key="clin_last"),
            "title": c1.text_input("Title", value="GP", key="clin_title"),
            "speciality": c2.text_input("Speciality", key="clin_spec"),
            "gmc_number": c1.text_input("GMC number", key="clin_gmc"),
            "email": c2.text_input("Email", key="clin_email"),
            "workplace_id": c1.text_input("Workplace ID", key="clin_work"),
            "workplace_type": c2.text_input("Workplace type", key="clin_work_type"),
        }
        if st.button("Add clinician", key="clin_submit"):
            try:
                res = api_post("/api/clinicians", payload, token=token)
                load_clinicians.clear()
                st.success(f"Clinician added: {res['clinician_id']}")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)

    with st.expander("Edit clinician"):
        current = st.selectbox(
            "Clinician",
            options=clinicians,
            format_func=lambda c: f"{c['clinician_id']} - {c['full_name']} ({c['title']})",
            key="clin_edit_id",
        )
        if current:
            with st.form(f"clin_edit_{current['clinician_id']}"):
                c1, c2 = st.columns(2)
                values = {
                    "first_name": c1.text_input("First name", value=current["first_name"]),
                    "last_name": c2.text_input("Last name", value=current["last_name"]),
                    "title": c1.text_input("Title", value=current["title"]),
                    "speciality": c2.text_input("Speciality", value=current["speciality"]),
                    "gmc_number": c1.text_input("GMC number", value=current["gmc_number"]),
                    "phone_number": c2.text_input("Phone", value=current["phone_number"]),
                    "email": c1.text_input("Email", value=current["email"]),
                    "workplace_id": c2.text_input("Workplace ID", value=current["workplace_id"]),
                    "workplace_type": c1.text_input("Workplace type", value=current["workplace_type"]),
                    "employment_status": c2.text_input("Employment status", value=current["employment_status"]),
                }
                if st.form_submit_button("Save clinician"):
                    try:
                        api_put(f"/api/clinicians/{current['clinician_id']}", values, token=token)
                        load_clinicians.clear()
                        st.success(f"{current['clinician_id']} updated.")
                    except (requests.RequestException, PermissionError) as e:
                        show_error(e)

    with st.expander("Remove clinician"):
        ids = [c["clinician_id"] for c in clinicians]
        clinician_id = st.selectbox("Clinician", options=ids, key="clin_del_id")
        if st.button("Remove", key="clin_del", disabled=not ids):
            try:
                api_delete(f"/api/clinicians/{clinician_id}", token=token)
                load_clinicians.clear()
                st.success(f"{clinician_id} removed.")
            except (requests.RequestException, PermissionError) as e:
                show_error(e)


def panel_patients(token: str) -> None:
    st.subheader("Manage patients")

    c1, c2, c3 = st.columns(3)
    pid = c1.text_input("Patient ID", key="pat_id")
    name = c2.text_input("Name", key="pat_name")
    nhs = c3.text_input("NHS number", key="pat_nhs")
    try:
        items = api_get("/api/patients", token=token, params={"patient_id": pid, "name": name, "nhs_number": nhs})
        st.dataframe(items, use_container_width=True)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        items = []

    with st.expander("Register patient"):
        c1, c2 = st.columns(2)
        first = c1.text_input("First name", key="pat_first")
        last = c2.text_input("Last name", key="pat_last")
        dob = c1.date_input("Date of birth", value=date(1990, 1, 1), min_value=date(1900, 1, 1), key="pat_dob")
        nhs_number = c2.text_input("NHS number", key="pat_new_nhs")
        email = c1.text_input("Email", key="pat_email")
        phone = c2.text_input("Phone", key="pat_phone")
        if st.button("Register", key="pat_submit"):
            if not first.strip() or not last.strip():
                st.error("First and last name are required.")
            else:
                payload = {
                    "first_name": first, "last_name": last, "date_of_birth": dob.isoformat(),
                    "nhs_number": nhs_number, "email": email, "phone_number": phone,
                }
                try:
                    res = api_post("/api/patients", payload, token=token)
                    st.success(f"Patient registered: {res['patient_id']}")
                except (requests.RequestException, PermissionError) as e:
                    show_error(e)

    with st.expander("Edit patient"):
        current = st.selectbox(
            "Patient",
            options=items,
            format_func=lambda p: f"{p['patient_id']} - {p['first_name']} {p['last_name']}",
            key="pat_edit_id",
        )
        if current:
            # form key follows the selection so the fields reload
            with st.form(f"pat_edit_{current['patient_id']}"):
                c1, c2 = st.columns(2)
                values = {
                    "first_name": c1.text_input("First name", value=current["first_name"]),
                    "last_name": c2.text_input("Last name", value=current["last_name"]),
                    "date_of_birth": c1.text_input("Date of birth (YYYY-MM-DD)", value=current["date_of_birth"]),
                    "nhs_number": c2.text_input("NHS number", value=current["nhs_number"]),
                    "gender": c1.text_input("Gender", value=current["gender"]),
                    "phone_number": c2.text_input("Phone", value=current["phone_number"]),
                    "email": c1.text_input("Email", value=current["email"]),
                    "address": c2.text_input("Address", value=current["address"]),
                    "postcode": c1.text_input("Postcode", value=current["postcode"]),
                    "gp_surgery_id": c2.text_input("GP surgery ID", value=current["gp_surgery_id"]),
                    "emergency_contact_name": c1.text_input(
                        "Emergency contact", value=current["emergency_contact_name"]
                    ),
                    "emergency_contact_phone": c2.text_input(
                        "Emergency phone", value=current["emergency_contact_phone"]
                    ),
                }
                if st.form_submit_button("Save patient"):
                    try:
                        api_put(f"/api/patients/{current['patient_id']}", values, token=token)
                        st.success(f"{current['patient_id']} updated.")
                    except (requests.RequestException, PermissionError) as e:
                        show_error(e)

    with st.expander("Delete patient"):
        ids = [p["patient_id"] for p in items]
        patient_id = st.selectbox("Patient", options=ids, key="pat_del_id")
        cascade = st.checkbox("Also remove appointments, prescriptions and record", value=True, key="pat_cascade")
        if st.button("Delete", key="pat_del", disabled=not ids):
            try:
                res = api_delete(f"/api/patients/{patient_id}", token=token, params={"cascade": cascade})
                st.success(
                    f"{patient_id} deleted ({res['appointments_removed']} appointments, "
                    f"{res['prescriptions_removed']} prescriptions)."
                )
            except (requests.RequestException, PermissionError) as e:
                show_error(e)


def panel_patient_portal(token: str) -> None:
    me = st.session_state.get("me") or {}
    params = None
    if me.get("role") != "Patient":
        params = {"patient_id": st.text_input("Patient ID", value="P001", key="portal_pid")}
    try:
        data = api_get("/api/portal", token=token, params=params)
    except (requests.RequestException, PermissionError) as e:
        show_error(e)
        return

    st.subheader(f"Welcome, {data['patient_name']}")
    st.write("**My appointments**")
    if data["appointments"]:
        st.dataframe(data["appointments"], use_container_width=True)
    else:
        st.info("No appointments.")
    st.write("**My prescriptions**")
    if data["prescriptions"]:
        st.dataframe(data["prescriptions"], use_container_width=True)
    else:
        st.info("No prescriptions.")


PANEL_RENDERERS = {
    "dashboard": panel_dashboard,
    "appointments": panel_appointments,
    "medical_records": panel_medical_records,
    "staff": panel_staff,
    "patients": panel_patients,
    "patient_portal": panel_patient_portal,
}


# UI

st.title("Clinic Records (API REST + JWT + Streamlit)")

token = st.session_state.get("token")
if not is_logged_in():
    st.info("Log in from the sidebar.")
    st.stop()
if jwt_is_expired(token):
    st.error("Session expired. Press Logout in the sidebar and log in again.")
    st.stop()

me = st.session_state.get("me") or {}
panels = me.get("panels") or []
if not panels:
    st.warning("No panels available for this role.")
    st.stop()

# The role's default panel comes first
panels = sorted(panels, key=lambda p: p["key"] != me.get("default_panel"))
tabs = st.tabs([p["title"] for p in panels])
for tab, panel in zip(tabs, panels):
    with tab:
        PANEL_RENDERERS[panel["key"]](token)
