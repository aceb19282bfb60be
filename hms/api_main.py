from __future__ import annotations

from datetime import date
from typing import Any, Callable

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel

from hms import services
from hms.auth_security import create_access_token, get_subject
from hms.auth_service import authenticate, ensure_accounts
from hms.clinic import Clinic
from hms.config import setup_logging
from hms.db import init_db
from hms.exceptions import (
    DuplicateRecordError,
    HmsError,
    InvalidRecordError,
    PermissionDeniedError,
    RecordNotFoundError,
    StorageError,
)
from hms.login import Identity, identity_by_id
from hms.roles import PANEL_TITLES, Panel, Role, require_panel

# OAuth2 Bearer (Authorization: Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

app = FastAPI(title="Clinic Records API", version="1.0.0")

_clinic: Clinic | None = None


def get_clinic() -> Clinic:
    global _clinic
    if _clinic is None:
        _clinic = Clinic.open()
    return _clinic


# Startup

@app.on_event("startup")
def startup() -> None:
    # Account table + one account per identity found in the CSV data (idempotent)
    setup_logging()
    init_db()
    ensure_accounts(get_clinic())


# Error mapping

_STATUS_BY_ERROR: dict[type[HmsError], int] = {
    RecordNotFoundError: 404,
    DuplicateRecordError: 409,
    InvalidRecordError: 422,
    PermissionDeniedError: 403,
    StorageError: 500,
}


@app.exception_handler(HmsError)
async def hms_error_handler(request: Request, exc: HmsError) -> JSONResponse:
    code = 400
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            code = _STATUS_BY_ERROR[cls]
            break
    return JSONResponse(status_code=code, content={"detail": str(exc), "field": exc.field})


# Auth schemas

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PanelOut(BaseModel):
    key: str
    title: str


class MeOut(BaseModel):
    user_id: str
    name: str
    role: str
    patient_id: str | None = None
    clinician_id: str | None = None
    panels: list[PanelOut]
    default_panel: str


# Domain schemas

class PatientIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: str | None = None
    nhs_number: str | None = None
    gender: str | None = None
    phone_number: str | None = None
    email: str | None = None
    address: str | None = None
    postcode: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    registration_date: str | None = None
    gp_surgery_id: str | None = None


class StaffIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    department: str | None = None
    facility_id: str | None = None
    phone_number: str | None = None
    email: str | None = None
    employment_status: str | None = None
    start_date: str | None = None
    line_manager: str | None = None
    access_level: str | None = None


class ClinicianIn(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    speciality: str | None = None
    gmc_number: str | None = None
    phone_number: str | None = None
    email: str | None = None
    workplace_id: str | None = None
    workplace_type: str | None = None
    employment_status: str | None = None
    start_date: str | None = None


class AppointmentCreateIn(BaseModel):
    patient_id: str
    clinician_id: str
    facility_id: str = ""
    appointment_date: str
    appointment_time: str
    duration_minutes: int = 15
    appointment_type: str = "Routine Consultation"
    reason_for_visit: str = ""
    notes: str = ""


class AppointmentUpdateIn(BaseModel):
    clinician_id: str | None = None
    facility_id: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    duration_minutes: str | None = None
    appointment_type: str | None = None
    status: str | None = None
    reason_for_visit: str | None = None
    notes: str | None = None


class MedicalRecordIn(BaseModel):
    allergies: str | None = None
    blood_type: str | None = None
    history: str | None = None


class PrescriptionIn(BaseModel):
    clinician_id: str | None = None
    medication_name: str
    dosage: str
    frequency: str = ""
    duration_days: str = ""
    quantity: str = ""
    instructions: str = ""
    pharmacy_name: str = ""
    appointment_id: str = ""


class ReferralIn(BaseModel):
    referring_clinician_id: str | None = None
    referred_to_clinician_id: str = ""
    referring_facility_id: str = ""
    referred_to_facility_id: str = ""
    urgency_level: str = "Routine"
    referral_reason: str
    clinical_summary: str = ""
    requested_investigations: str = ""
    notes: str = ""
    appointment_id: str = ""


# Auth dependencies

def get_current_user(token: str = Depends(oauth2_scheme), clinic: Clinic = Depends(get_clinic)) -> Identity:
    token = token.strip().strip('"').strip("'")

    user_id = get_subject(token)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    # exact ID lookup; role changes in the CSV data apply immediately
    identity = identity_by_id(clinic, user_id)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return identity


def panel_user(panel: Panel) -> Callable[..., Identity]:
    """Dependency: the current user, who must be allowed to open `panel`."""

    def dependency(user: Identity = Depends(get_current_user)) -> Identity:
        require_panel(user.role, panel)
        return user

    return dependency


def _payload(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(exclude_none=True)


def _own_clinician(user: Identity, clinician_id: str | None) -> str:
    value = clinician_id or user.clinician_id
    if not value:
        raise InvalidRecordError("clinician_id is required.", field="clinician_id")
    return value


# AUTH endpoints

@app.post("/api/auth/login", response_model=TokenOut)
def login(form: OAuth2PasswordRequestForm = Depends(), clinic: Clinic = Depends(get_clinic)) -> TokenOut:
    identity = authenticate(clinic, form.username, form.password)
    if not identity:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(
        subject=identity.user_id, extra={"role": identity.role.value, "name": identity.name}
    )
    return TokenOut(access_token=token)


@app.get("/api/me", response_model=MeOut)
def me(user: Identity = Depends(get_current_user)) -> MeOut:
    return MeOut(
        user_id=user.user_id,
        name=user.name,
        role=user.role.value,
        patient_id=user.patient_id,
        clinician_id=user.clinician_id,
        panels=[PanelOut(key=p.value, title=PANEL_TITLES[p]) for p in user.panels],
        default_panel=user.default_panel.value,
    )


@app.get("/api/facilities")
def api_facilities(
    user: Identity = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)
) -> list[dict]:
    return [f.as_dict() for f in clinic.facilities.get_all()]


@app.get("/api/clinicians")
def api_clinicians(
    user: Identity = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)
) -> list[dict]:
    return [c.as_dict() | {"full_name": c.full_name} for c in clinic.clinicians.get_all()]


# Dashboard

@app.get("/api/dashboard/appointments")
def api_dashboard(
    day: date | None = Query(default=None),
    user: Identity = Depends(panel_user(Panel.DASHBOARD)),
    clinic: Clinic = Depends(get_clinic),
) -> list[dict]:
    return services.appointments_on_flat(clinic, day or date.today())


# Manage Patients

@app.get("/api/patients")
def api_patients(
    patient_id: str = "",
    name: str = "",
    nhs_number: str = "",
    user: Identity = Depends(panel_user(Panel.PATIENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> list[dict]:
    return [p.as_dict() for p in services.search_patients(clinic, patient_id, name, nhs_number)]


@app.post("/api/patients", status_code=status.HTTP_201_CREATED)
def api_create_patient(
    payload: PatientIn,
    user: Identity = Depends(panel_user(Panel.PATIENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    p = services.register_patient(clinic, **_payload(payload))
    return p.as_dict()


@app.put("/api/patients/{patient_id}")
def api_update_patient(
    patient_id: str,
    payload: PatientIn,
    user: Identity = Depends(panel_user(Panel.PATIENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.edit_patient(clinic, patient_id, **_payload(payload)).as_dict()


@app.delete("/api/patients/{patient_id}")
def api_delete_patient(
    patient_id: str,
    cascade: bool = True,
    user: Identity = Depends(panel_user(Panel.PATIENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    result = services.delete_patient(clinic, patient_id, cascade=cascade)
    if not result.ok:
        raise HTTPException(status_code=404, detail=f"Patient {patient_id} not found.")
    return {
        "ok": True,
        "appointments_removed": result.appointments_removed,
        "prescriptions_removed": result.prescriptions_removed,
        "medical_record_removed": result.medical_record_removed,
    }


# Manage Staff

@app.get("/api/staff")
def api_staff(
    term: str = "",
    role: str = "All",
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> list[dict]:
    return [s.as_dict() for s in services.search_staff(clinic, term, role)]


@app.post("/api/staff", status_code=status.HTTP_201_CREATED)
def api_create_staff(
    payload: StaffIn,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.register_staff(clinic, **_payload(payload)).as_dict()


@app.put("/api/staff/{staff_id}")
def api_update_staff(
    staff_id: str,
    payload: StaffIn,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.edit_staff(clinic, staff_id, **_payload(payload)).as_dict()


@app.delete("/api/staff/{staff_id}")
def api_delete_staff(
    staff_id: str,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    if not services.remove_staff(clinic, staff_id):
        raise HTTPException(status_code=404, detail=f"Staff {staff_id} not found.")
    return {"ok": True}


@app.post("/api/clinicians", status_code=status.HTTP_201_CREATED)
def api_create_clinician(
    payload: ClinicianIn,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.register_clinician(clinic, **_payload(payload)).as_dict()


@app.put("/api/clinicians/{clinician_id}")
def api_update_clinician(
    clinician_id: str,
    payload: ClinicianIn,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.edit_clinician(clinic, clinician_id, **_payload(payload)).as_dict()


@app.delete("/api/clinicians/{clinician_id}")
def api_delete_clinician(
    clinician_id: str,
    user: Identity = Depends(panel_user(Panel.STAFF)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    if not services.remove_clinician(clinic, clinician_id):
        raise HTTPException(status_code=404, detail=f"Clinician {clinician_id} not found.")
    return {"ok": True}


# Appointments

@app.get("/api/appointments")
def api_appointments(
    by: str = "patient_id",
    text: str = "",
    user: Identity = Depends(panel_user(Panel.APPOINTMENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> list[dict]:
    return [services.appointment_flat(clinic, a) for a in services.filter_appointments(clinic, by, text)]


@app.post("/api/appointments", status_code=status.HTTP_201_CREATED)
def api_book_appointment(
    payload: AppointmentCreateIn,
    user: Identity = Depends(panel_user(Panel.APPOINTMENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    a = services.book_appointment(clinic, **payload.model_dump())
    return a.as_dict()


@app.put("/api/appointments/{appointment_id}")
def api_update_appointment(
    appointment_id: str,
    payload: AppointmentUpdateIn,
    user: Identity = Depends(panel_user(Panel.APPOINTMENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.edit_appointment(clinic, appointment_id, **_payload(payload)).as_dict()


@app.delete("/api/appointments/{appointment_id}")
def api_cancel_appointment(
    appointment_id: str,
    user: Identity = Depends(panel_user(Panel.APPOINTMENTS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    if not services.cancel_appointment(clinic, appointment_id):
        raise HTTPException(status_code=404, detail=f"Appointment {appointment_id} not found.")
    return {"ok": True}


# Medical Records

@app.get("/api/medical-records/options")
def api_record_options(
    user: Identity = Depends(panel_user(Panel.MEDICAL_RECORDS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, list[str]]:
    return {
        "medications": clinic.prescriptions.medication_options(),
        "pharmacies": clinic.prescriptions.pharmacy_options(),
    }


@app.get("/api/medical-records/{patient_id}")
def api_patient_summary(
    patient_id: str,
    user: Identity = Depends(panel_user(Panel.MEDICAL_RECORDS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.patient_summary(clinic, patient_id)


@app.put("/api/medical-records/{patient_id}")
def api_update_record(
    patient_id: str,
    payload: MedicalRecordIn,
    user: Identity = Depends(panel_user(Panel.MEDICAL_RECORDS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    return services.update_medical_record(clinic, patient_id, **payload.model_dump()).as_dict()


@app.post("/api/medical-records/{patient_id}/prescriptions", status_code=status.HTTP_201_CREATED)
def api_issue_prescription(
    patient_id: str,
    payload: PrescriptionIn,
    user: Identity = Depends(panel_user(Panel.MEDICAL_RECORDS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    data = payload.model_dump()
    data["clinician_id"] = _own_clinician(user, data["clinician_id"])
    issued = services.issue_prescription(clinic, patient_id, **data)
    return issued.prescription.as_dict() | {"file_path": str(issued.file_path)}


@app.post("/api/medical-records/{patient_id}/referrals", status_code=status.HTTP_201_CREATED)
def api_create_referral(
    patient_id: str,
    payload: ReferralIn,
    user: Identity = Depends(panel_user(Panel.MEDICAL_RECORDS)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    data = payload.model_dump()
    data["referring_clinician_id"] = _own_clinician(user, data["referring_clinician_id"])
    created = services.create_referral(clinic, patient_id, **data)
    return created.referral.as_dict() | {"letter_path": str(created.letter_path)}


# Patient Dashboard

@app.get("/api/portal")
def api_portal(
    patient_id: str | None = None,
    user: Identity = Depends(panel_user(Panel.PATIENT_PORTAL)),
    clinic: Clinic = Depends(get_clinic),
) -> dict[str, Any]:
    # Patients only ever see their own data; the developer may pick one
    if user.role is Role.PATIENT:
        patient_id = user.patient_id
    if not patient_id:
        raise InvalidRecordError("patient_id is required.", field="patient_id")
    return services.patient_dashboard(clinic, patient_id)
