import os
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlencode
from uuid import uuid4

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.staticfiles import StaticFiles
from passlib.context import CryptContext
from passlib.hash import pbkdf2_sha256
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import RedirectResponse, Response
from starlette.status import HTTP_303_SEE_OTHER

from impound_console import activity
from impound_console.activity import log_event
from impound_console.adoptable import AdoptableForm, breeds_for
from impound_console.console import ConsoleSession
from impound_console.errors import ConsoleError, PartialTransferError
from impound_console.exports import reports_csv, reports_pdf
from impound_console.models import (
    ADMIN_ROLES,
    PET_TYPES,
    REGULAR_ROLE,
    USERS,
    Actor,
    ApplicationStatus,
    UserAccount,
    _adoptable_to_dict,
    _application_to_dict,
    _attempt_to_dict,
    _owned_pet_to_dict,
    _report_to_dict,
    _user_to_dict,
    decode_all,
)
from impound_console.store import UPLOAD_DIR, UPLOAD_URL_PREFIX, InMemoryStore, utc_now
from impound_console.trends import growth, monthly_counts

# --- App Setup ---
app = FastAPI(title="Impound Admin Console")

# Add session middleware for simple session-based auth
SESSION_SECRET = os.environ.get("SESSION_SECRET", "dev-secret-please-change")
SESSION_MAX_AGE = int(os.environ.get("SESSION_MAX_AGE", "3600"))  # seconds
SESSION_HTTPS_ONLY = bool(int(os.environ.get("SESSION_HTTPS_ONLY", "0")))
SESSION_SAME_SITE = os.environ.get("SESSION_SAME_SITE", "lax")
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    max_age=SESSION_MAX_AGE,
    same_site=SESSION_SAME_SITE,
    https_only=SESSION_HTTPS_ONLY,
)

# Password hasher
# Use pbkdf2_sha256 as the primary scheme to avoid bcrypt's 72-byte limit, but
# keep bcrypt for existing hashes.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "bcrypt"],
    deprecated="auto",
)

# Simple in-memory rate limiter for auth endpoints (per-IP)
LOGIN_ATTEMPTS = {}
LOGIN_WINDOW = int(os.environ.get("LOGIN_WINDOW", "300"))  # seconds
LOGIN_MAX_ATTEMPTS = int(os.environ.get("LOGIN_MAX_ATTEMPTS", "5"))

SEED_ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "admin@impound.local")
SEED_ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "admin")

# Uploaded adoptable-pet photos are served from the upload directory
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")

ADMIN_REQUIRED = "/login?error=Admin access required."

# --- Data (JSON-persisted document store) ---
store = InMemoryStore()

# One viewing session per logged-in operator, keyed by the token in their cookie
console_sessions: Dict[str, ConsoleSession] = {}


def _hash_password(pw: str) -> str:
    if len(pw.encode('utf-8')) > 72:
        return pbkdf2_sha256.hash(pw)
    return pwd_context.hash(pw)


def ensure_hashed_passwords():
    """Hash any plaintext password left in the users collection."""
    for doc in store.list_all(USERS):
        pw = doc.get("password")
        # accounts without a password (created elsewhere) stay unable to log in here
        if not pw:
            continue
        if pw.startswith("$2") or pw.startswith("$pbkdf2-sha256$"):
            continue
        store.write_one(USERS, doc["id"], {"password": _hash_password(pw)})


def seed_users():
    """Make sure the demo impound admin and demo regular user exist."""
    existing = {(doc.get("email") or "").lower() for doc in store.list_all(USERS)}
    seeds = [
        UserAccount(user_id=uuid4().hex, email=SEED_ADMIN_EMAIL, password=SEED_ADMIN_PASSWORD,
                    role="impound_admin", full_name="Impound Admin"),
        UserAccount(user_id=uuid4().hex, email="user@impound.local", password="user",
                    role=REGULAR_ROLE, full_name="Regular User"),
    ]
    for u in seeds:
        if u.email.lower() in existing:
            continue
        u.password = _hash_password(u.password)
        u.created_at = utc_now()
        store.create_one(USERS, _user_to_dict(u), doc_id=u.user_id)
    ensure_hashed_passwords()


store.load_state()
seed_users()


# --- Utility Functions ---
def find_user(user_id: Optional[str] = None, email: Optional[str] = None) -> Optional[UserAccount]:
    for u in decode_all(USERS, store.list_all(USERS)):
        if user_id is not None and u.user_id == str(user_id):
            return u
        if email is not None and u.email.lower() == email.lower():
            return u
    return None


def end_console(request: Request):
    token = request.session.get("console_token")
    console = console_sessions.pop(token, None) if token else None
    if console is not None:
        console.stop()


def get_current_user(request: Request) -> Optional[UserAccount]:
    """Return the authenticated UserAccount if any (based on session), otherwise None.

    Implements a simple session timeout: if the session's `last_active` timestamp
    exceeds `SESSION_MAX_AGE`, the session is cleared and the user must log in again.
    """
    user_id = request.session.get("user_id")
    if not user_id:
        return None

    last_active = request.session.get("last_active")
    if last_active:
        try:
            la = datetime.fromisoformat(last_active)
            # Ensure timezone awareness for comparison
            if la.tzinfo is None:
                la = la.replace(tzinfo=timezone.utc)
            age = (datetime.now(timezone.utc) - la).total_seconds()
            expired = age > SESSION_MAX_AGE
        except ValueError:
            expired = True
        if expired:
            end_console(request)
            request.session.clear()
            return None

    # Update last_active (sliding expiration)
    request.session["last_active"] = datetime.now(timezone.utc).isoformat()

    return find_user(user_id=user_id)


def resolve_user(request: Request):
    """Return tuple (user_role, current_user); the role is "guest" without a live session."""
    current_user = get_current_user(request)
    user_role = current_user.role if current_user else "guest"
    return user_role, current_user


def _alert_to_log(title: str, body: str):
    log_event(f"Alert: {title} - {body}")


def expire_idle_consoles():
    """Stop console sessions whose operator has been idle longer than SESSION_MAX_AGE."""
    now = datetime.now(timezone.utc)
    for token, console in list(console_sessions.items()):
        if (now - console.last_active).total_seconds() > SESSION_MAX_AGE:
            console_sessions.pop(token, None)
            console.stop()


def get_console(request: Request, user: UserAccount) -> ConsoleSession:
    expire_idle_consoles()
    token = request.session.get("console_token")
    console = console_sessions.get(token) if token else None
    if console is None or console.actor.id != user.user_id:
        end_console(request)
        token = uuid4().hex
        console = ConsoleSession(
            store,
            Actor(id=user.user_id, email=user.email, role=user.role),
            notify_user=_alert_to_log,
        )
        console.start()
        console_sessions[token] = console
        request.session["console_token"] = token
    console.touch()
    return console


def redirect(url: str, status: Optional[str] = None, error: Optional[str] = None) -> RedirectResponse:
    params = {k: v for k, v in (("status", status), ("error", error)) if v}
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)


def read_upload(upload_file: Optional[UploadFile]):
    """Return (bytes, filename) for an uploaded file, or (None, "") when nothing was sent."""
    if not upload_file or not getattr(upload_file, 'filename', None):
        return None, ""
    return upload_file.file.read(), upload_file.filename


# --- 1. Core Pages ---

@app.get("/", tags=["Core Pages"])
def read_root(request: Request):
    user_role, current_user = resolve_user(request)
    return {
        "app": "Impound Admin Console",
        "user_role": user_role,
        "current_user": current_user.email if current_user else None,
    }


# --- 2. Login/Logout Endpoints ---

@app.get("/login", tags=["Authentication"])
def read_login_page(request: Request):
    error = request.query_params.get('error')
    success = request.query_params.get('success')
    return {"error": error, "success": success}


@app.post("/login", tags=["Authentication"])
def process_login(request: Request, username: str = Form(...), password: str = Form(...)):
    # Rate limit check (per-IP)
    client_host = request.client.host if request.client else "unknown"
    now_ts = datetime.now(timezone.utc).timestamp()
    attempts = LOGIN_ATTEMPTS.get(client_host, [])
    # purge old attempts
    attempts = [ts for ts in attempts if now_ts - ts < LOGIN_WINDOW]
    if len(attempts) >= LOGIN_MAX_ATTEMPTS:
        return RedirectResponse(url="/login?error=Too+many+login+attempts", status_code=HTTP_303_SEE_OTHER)

    user = find_user(email=username)
    if user and user.password and pwd_context.verify(password, user.password):
        # successful login: reset attempts
        LOGIN_ATTEMPTS[client_host] = []
        end_console(request)
        request.session.clear()
        request.session["user_id"] = user.user_id
        request.session["user_role"] = user.role
        # Track last active for session timeout
        request.session["last_active"] = datetime.now(timezone.utc).isoformat()
        log_event(f"{user.email} logged in.")
        target = "/"
        if user.role in ADMIN_ROLES:
            get_console(request, user)
            target = "/admin/dashboard"
        return RedirectResponse(url=target, status_code=HTTP_303_SEE_OTHER)

    # record failed attempt
    attempts.append(now_ts)
    LOGIN_ATTEMPTS[client_host] = attempts

    return RedirectResponse(
        url="/login?error=Invalid+email+or+password.",
        status_code=HTTP_303_SEE_OTHER
    )


@app.get("/logout", tags=["Authentication"])
def process_logout(request: Request):
    """Stops the operator's console session, clears the cookie session and redirects to login."""
    end_console(request)
    request.session.clear()
    return RedirectResponse(url="/login", status_code=HTTP_303_SEE_OTHER)


# --- 3. Admin Dashboard (PROTECTED) ---

@app.get("/admin/dashboard", tags=["Admin Panel"])
def read_admin_dashboard(request: Request):
    """Admin dashboard with quick stats, six-month trends and recent activity."""
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)

    now = datetime.now(timezone.utc)
    report_trend = monthly_counts([r.report_time for r in console.reports], now)
    application_trend = monthly_counts([a.created_at for a in console.applications], now)
    transfer_trend = monthly_counts([p.transferred_at for p in console.transferred_pets], now)

    buckets = console.buckets
    return {
        "user_role": user_role,
        "current_user": current_user.email,
        "stats": {
            "stray_reports": len(buckets.stray),
            "lost_reports": len(buckets.lost),
            "incident_reports": len(buckets.incident),
            "unread_notifications": buckets.unread_count,
            "pending_applications": len([a for a in console.applications
                                         if a.status_kind == ApplicationStatus.SUBMITTED]),
            "adoptable_pets": len(console.adoptable_pets),
            "transferred_pets": len(console.transferred_pets),
            "registered_users": len([u for u in console.users if u.role == REGULAR_ROLE]),
        },
        "trends": {
            "reports": [b.model_dump() for b in report_trend],
            "applications": [b.model_dump() for b in application_trend],
            "transfers": [b.model_dump() for b in transfer_trend],
        },
        "growth": {
            "reports": growth([b.count for b in report_trend]),
            "applications": growth([b.count for b in application_trend]),
            "transfers": growth([b.count for b in transfer_trend]),
        },
        "logs": activity.recent(10),  # latest 10
        "subscription_errors": [str(e) for e in console.drain_errors()],
        "exports": {"csv": "/admin/export/reports.csv", "pdf": "/admin/export/reports.pdf"},
    }


# --- 4. Reports & Notifications ---

@app.get("/admin/reports", tags=["Reports"])
def read_admin_reports(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    buckets = console.buckets
    return {
        "stray": [_report_to_dict(r) for r in buckets.stray],
        "lost": [_report_to_dict(r) for r in buckets.lost],
        "incident": [_report_to_dict(r) for r in buckets.incident],
        "status": request.query_params.get("status"),
        "error": request.query_params.get("error"),
    }


@app.get("/admin/notifications", tags=["Reports"])
def read_admin_notifications(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    return {
        "notifications": [_report_to_dict(r) for r in console.buckets.notifications],
        "unread_count": console.buckets.unread_count,
    }


@app.get("/admin/alerts", tags=["Reports"])
def read_admin_alerts(request: Request):
    """New reports and applications that arrived since the last poll."""
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    return {"alerts": [a.model_dump() for a in console.drain_alerts()]}


@app.post("/admin/reports/{report_id}/resolve", status_code=HTTP_303_SEE_OTHER, tags=["Reports"])
def resolve_report(request: Request, report_id: str):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.resolve_report(report_id)
    except ConsoleError as e:
        return redirect("/admin/reports", error=str(e))
    return redirect("/admin/reports", status="Report resolved")


@app.post("/admin/reports/{report_id}/decline", status_code=HTTP_303_SEE_OTHER, tags=["Reports"])
def decline_report(request: Request, report_id: str, reason: str = Form("")):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.decline_report(report_id, reason)
    except ConsoleError as e:
        return redirect("/admin/reports", error=str(e))
    return redirect("/admin/reports", status="Report declined")


@app.post("/admin/reports/{report_id}/read", status_code=HTTP_303_SEE_OTHER, tags=["Reports"])
def mark_report_read(request: Request, report_id: str, value: bool = Form(True)):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.set_report_read(report_id, value)
    except ConsoleError as e:
        return redirect("/admin/notifications", error=str(e))
    return redirect("/admin/notifications", status="Marked read" if value else "Marked unread")


@app.post("/admin/notifications/hide-all", status_code=HTTP_303_SEE_OTHER, tags=["Reports"])
def hide_all_notifications(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        count = console.hide_all_notifications()
    except ConsoleError as e:
        return redirect("/admin/notifications", error=str(e))
    return redirect("/admin/notifications", status=f"{count} notification(s) hidden")


@app.post("/admin/notifications/mark-all-read", status_code=HTTP_303_SEE_OTHER, tags=["Reports"])
def mark_all_notifications_read(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        count = console.mark_all_notifications_read()
    except ConsoleError as e:
        return redirect("/admin/notifications", error=str(e))
    return redirect("/admin/notifications", status=f"{count} notification(s) marked read")


# --- 5. Adoption Applications ---

@app.get("/admin/applications", tags=["Applications"])
def read_admin_applications(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    wanted = ApplicationStatus.parse(request.query_params.get("status_filter"))
    apps = console.applications
    if request.query_params.get("status_filter"):
        apps = [a for a in apps if a.status_kind == wanted]
    return {
        "applications": [_application_to_dict(a) for a in apps],
        "open_application_id": console.open_application_id,
        "status": request.query_params.get("status"),
        "error": request.query_params.get("error"),
    }


@app.get("/admin/applications/{application_id}", tags=["Applications"])
def read_application_detail(request: Request, application_id: str):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        app_record = console.open_application(application_id)
    except ConsoleError as e:
        return redirect("/admin/applications", error=str(e))
    return {"application": _application_to_dict(app_record), "open_application_id": console.open_application_id}


@app.post("/admin/applications/{application_id}/approve", status_code=HTTP_303_SEE_OTHER, tags=["Applications"])
def approve_application(request: Request, application_id: str):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.approve_application(application_id)
    except ConsoleError as e:
        return redirect("/admin/applications", error=str(e))
    return redirect("/admin/applications", status="Application approved")


@app.post("/admin/applications/{application_id}/decline", status_code=HTTP_303_SEE_OTHER, tags=["Applications"])
def decline_application(request: Request, application_id: str, reason: Optional[str] = Form(None)):
    """Decline with the operator's reason; posting no reason field at all cancels."""
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        patch = console.decline_application_interactive(application_id, lambda message: reason)
    except ConsoleError as e:
        return redirect("/admin/applications", error=str(e))
    if patch is None:
        return redirect("/admin/applications", status="Decline cancelled")
    return redirect("/admin/applications", status="Application declined")


# --- 6. Adoptable Pets ---

def adoptable_form(
    pet_name: str = Form(""),
    pet_type: str = Form(""),
    breed: str = Form(""),
    age: Optional[str] = Form(None),
    gender: str = Form(""),
    description: Optional[str] = Form(None),
    vaccinated: bool = Form(False),
    vaccinated_date: Optional[str] = Form(None),
    dewormed: bool = Form(False),
    dewormed_date: Optional[str] = Form(None),
    anti_rabies: bool = Form(False),
    anti_rabies_date: Optional[str] = Form(None),
    ready_for_adoption: bool = Form(True),
) -> AdoptableForm:
    return AdoptableForm(
        pet_name=pet_name,
        pet_type=pet_type.lower(),
        breed=breed,
        age=age,
        gender=gender.lower(),
        description=description,
        vaccinated=vaccinated,
        vaccinated_date=vaccinated_date,
        dewormed=dewormed,
        dewormed_date=dewormed_date,
        anti_rabies=anti_rabies,
        anti_rabies_date=anti_rabies_date,
        ready_for_adoption=ready_for_adoption,
    )


@app.get("/admin/adoptables", tags=["Adoptable Pets"])
def read_admin_adoptables(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    return {
        "adoptable_pets": [_adoptable_to_dict(p) for p in console.adoptable_pets],
        "transferred_pets": [_owned_pet_to_dict(p) for p in console.transferred_pets],
        "pet_types": list(PET_TYPES),
        "status": request.query_params.get("status"),
        "error": request.query_params.get("error"),
    }


@app.post("/admin/adoptables", status_code=HTTP_303_SEE_OTHER, tags=["Adoptable Pets"])
def post_adoptable(request: Request, form: AdoptableForm = Depends(adoptable_form),
                   image: Optional[UploadFile] = File(None)):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    data, filename = read_upload(image)
    try:
        console.post_adoptable(form, data, filename)
    except ConsoleError as e:
        return redirect("/admin/adoptables", error=str(e))
    return redirect("/admin/adoptables", status="Pet posted for adoption")


@app.post("/admin/adoptables/{pet_id}/edit", status_code=HTTP_303_SEE_OTHER, tags=["Adoptable Pets"])
def edit_adoptable(request: Request, pet_id: str, form: AdoptableForm = Depends(adoptable_form),
                   image: Optional[UploadFile] = File(None)):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    data, filename = read_upload(image)
    try:
        console.edit_adoptable(pet_id, form, data, filename)
    except ConsoleError as e:
        return redirect("/admin/adoptables", error=str(e))
    return redirect("/admin/adoptables", status="Pet updated")


@app.post("/admin/adoptables/{pet_id}/delete", status_code=HTTP_303_SEE_OTHER, tags=["Adoptable Pets"])
def delete_adoptable(request: Request, pet_id: str, confirm: bool = Form(False)):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        deleted = console.delete_adoptable(pet_id, lambda message: confirm)
    except ConsoleError as e:
        return redirect("/admin/adoptables", error=str(e))
    if not deleted:
        return redirect("/admin/adoptables", status="Delete cancelled")
    return redirect("/admin/adoptables", status="Pet deleted")


@app.get("/admin/breeds/{pet_type}", tags=["Adoptable Pets"])
def read_breeds(request: Request, pet_type: str):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    return {"pet_type": pet_type.lower(), "breeds": breeds_for(pet_type)}


# --- 7. Transfers ---

@app.get("/admin/transfer/candidates", tags=["Transfers"])
def read_transfer_candidates(request: Request, search: str = ""):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    return {"candidates": [c.model_dump() for c in console.transfer_candidates(search)], "search": search}


@app.post("/admin/transfer", status_code=HTTP_303_SEE_OTHER, tags=["Transfers"])
def transfer_pet(request: Request, pet_id: str = Form(...), user_id: str = Form(...)):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.transfer(pet_id, user_id)
    except PartialTransferError as e:
        return redirect("/admin/transfer/attempts", error=f"{e} Resume the transfer to finish it.")
    except ConsoleError as e:
        return redirect("/admin/adoptables", error=str(e))
    return redirect("/admin/adoptables", status="Pet transferred")


@app.post("/admin/transfer/{attempt_id}/resume", status_code=HTTP_303_SEE_OTHER, tags=["Transfers"])
def resume_transfer(request: Request, attempt_id: str):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    try:
        console.resume_transfer(attempt_id)
    except ConsoleError as e:
        return redirect("/admin/transfer/attempts", error=str(e))
    return redirect("/admin/transfer/attempts", status="Transfer completed")


@app.get("/admin/transfer/attempts", tags=["Transfers"])
def read_transfer_attempts(request: Request):
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    attempts: List[dict] = []
    for a in console.transfers.attempts():
        # the stored copies of the created documents are not needed for the listing
        summary = _attempt_to_dict(a)
        summary.pop("petDoc")
        summary.pop("notificationDoc")
        attempts.append(summary)
    return {
        "attempts": attempts,
        "status": request.query_params.get("status"),
        "error": request.query_params.get("error"),
    }


# --- 8. Exports ---

@app.get("/admin/export/reports.csv", tags=["Admin Panel"])
def admin_export_reports_csv(request: Request):
    """Admin-only CSV export of every report, including resolved and declined ones."""
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    headers = {"Content-Disposition": "attachment; filename=reports_export.csv"}
    return Response(content=reports_csv(console.reports), media_type="text/csv", headers=headers)


@app.get("/admin/export/reports.pdf", tags=["Admin Panel"])
def admin_export_reports_pdf(request: Request):
    """Admin-only PDF export of every report."""
    user_role, current_user = resolve_user(request)
    if user_role not in ADMIN_ROLES:
        return RedirectResponse(url=ADMIN_REQUIRED, status_code=HTTP_303_SEE_OTHER)
    console = get_console(request, current_user)
    headers = {"Content-Disposition": "attachment; filename=reports_export.pdf"}
    return Response(content=reports_pdf(console.reports), media_type="application/pdf", headers=headers)
