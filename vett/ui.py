"""HTML pages.

Each page loads the account state once, asks ``guard_page`` whether the user
belongs here and only then renders. Forms post back to the page that showed
them; failures re-render the same template with the messages in ``vm.errors``.
"""

from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request

from .account_service import complete_profile, set_role, signup as create_account, update_settings
from .account_state import AccountState, guard_page, landing_for, safe_redirect_target
from .app_authz import AuthzError, current_account, refresh_account
from .app_sessions import SessionError, clear_login, get_session_user_id
from .auth import check_credentials, login_user
from .db import get_session
from .errors import DomainError, NotFoundError, RateLimitError, ValidationError
from .models import User
from .pagination import PaginationError, parse_page_params
from .profile_service import get_own_profile, get_profile, next_profile_for_review, submit_profile
from .profiles_api import uploaded_images
from .review_service import MIN_FEEDBACK_LENGTH, reviews_for_owner, submit_review
from .storage import get_storage

bp = Blueprint("ui", __name__)

FRIENDLY_ERRORS = {
    "email_taken": "An account with this email already exists",
    "username_taken": "Username is already taken. Please choose another.",
    "already_reviewed": "You have already reviewed this profile",
    "profile_not_found": "Profile not found",
    "missing credentials": "Please enter your email and password",
    "invalid credentials": "Invalid email or password",
    "cannot review own profile": "You cannot review your own profile",
}


def _messages(err: Exception) -> list[str]:
    if isinstance(err, ValidationError):
        return [str(e.get("message")) for e in err.errors]
    if isinstance(err, RateLimitError):
        return [f"Too many failed attempts. Try again in {err.retry_after} seconds."]
    detail = err.detail if isinstance(err, DomainError) else str(err)
    return [FRIENDLY_ERRORS.get(detail, detail)]


def _page_state() -> AccountState | None:
    """Pages treat a rejected bearer token or a dangling session like anonymous."""
    try:
        state = current_account()
    except SessionError:
        return None
    if state is None and get_session_user_id() is not None:
        clear_login()
    return state


def _guard(path: str | None = None) -> tuple[AccountState | None, str | None]:
    state = _page_state()
    return state, guard_page(state, path or request.path)


# ----------------------------------------------------------------------------
# Public pages
# ----------------------------------------------------------------------------


@bp.get("/")
def index():
    state = _page_state()
    return render_template("index.html", vm={"state": state, "start": landing_for(state) if state else "/signup"})


@bp.route("/login", methods=["GET", "POST"])
def login():
    state = _page_state()
    target = safe_redirect_target(request.args.get("redirect") or request.form.get("redirect"))
    if state is not None:
        return redirect(target or landing_for(state))
    vm: dict[str, object] = {"redirect": target or "", "email": ""}
    if request.method == "POST":
        email = request.form.get("email")
        vm["email"] = email or ""
        db = get_session()
        try:
            user = check_credentials(db, email, request.form.get("password"))
        except (DomainError, SessionError) as e:
            vm["errors"] = _messages(e)
            return render_template("login.html", vm=vm), 400
        login_user(db, user)
        return redirect(target or landing_for(refresh_account()))
    return render_template("login.html", vm=vm)


@bp.route("/signup", methods=["GET", "POST"])
def signup():
    state = _page_state()
    if state is not None:
        return redirect(landing_for(state))
    vm: dict[str, object] = {"email": ""}
    if request.method == "POST":
        email = request.form.get("email")
        vm["email"] = email or ""
        db = get_session()
        try:
            user = create_account(db, email, request.form.get("password"), request.form.get("confirm_password"))
        except DomainError as e:
            vm["errors"] = _messages(e)
            return render_template("signup.html", vm=vm), 400
        login_user(db, user)
        return redirect("/dashboard")
    return render_template("signup.html", vm=vm)


@bp.post("/logout")
def logout():
    user_id = get_session_user_id()
    if user_id is not None:
        db = get_session()
        user = db.get(User, user_id)
        if user is not None and user.refresh_token_jti:
            user.refresh_token_jti = None
            db.commit()
    clear_login()
    return redirect("/login")


@bp.get("/auth/error")
def auth_error():
    message = request.args.get("message") or "Something went wrong while signing you in."
    return render_template("auth_error.html", vm={"message": message})


# ----------------------------------------------------------------------------
# Account pages
# ----------------------------------------------------------------------------


@bp.route("/dashboard", methods=["GET", "POST"])
def dashboard():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    vm: dict[str, object] = {"state": state}
    if request.method == "POST":
        try:
            set_role(get_session(), state.user_id, request.form.get("role"))
        except DomainError as e:
            vm["errors"] = _messages(e)
            return render_template("dashboard.html", vm=vm), 400
        return redirect(landing_for(refresh_account()))
    return render_template("dashboard.html", vm=vm)


@bp.route("/profile-setup", methods=["GET", "POST"])
def profile_setup():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    vm: dict[str, object] = {
        "state": state,
        "display_name": state.display_name or "",
        "username": state.username or "",
    }
    if request.method == "POST":
        vm["display_name"] = request.form.get("display_name") or ""
        vm["username"] = request.form.get("username") or ""
        try:
            complete_profile(
                get_session(),
                state.user_id,
                request.form.get("display_name"),
                request.form.get("username"),
                get_storage(),
                request.files.get("avatar"),
            )
        except DomainError as e:
            vm["errors"] = _messages(e)
            return render_template("profile_setup.html", vm=vm), 400
        return redirect(landing_for(refresh_account()))
    return render_template("profile_setup.html", vm=vm)


@bp.route("/settings/profile", methods=["GET", "POST"])
def settings_profile():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    vm: dict[str, object] = {"state": state, "display_name": state.display_name or "", "bio": state.bio or ""}
    if request.method == "POST":
        vm["display_name"] = request.form.get("display_name") or ""
        vm["bio"] = request.form.get("bio") or ""
        try:
            update_settings(
                get_session(),
                state.user_id,
                display_name=request.form.get("display_name"),
                bio=request.form.get("bio"),
            )
        except DomainError as e:
            vm["errors"] = _messages(e)
            return render_template("settings.html", vm=vm), 400
        flash("Profile updated")
        return redirect("/settings/profile")
    return render_template("settings.html", vm=vm)


# ----------------------------------------------------------------------------
# Submitter pages
# ----------------------------------------------------------------------------


@bp.route("/submit", methods=["GET", "POST"])
def submit():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    db = get_session()
    limit = int(current_app.config.get("MAX_PROFILE_IMAGES", 6))
    vm: dict[str, object] = {"state": state, "max_images": limit, "profile": None, "profile_text": ""}
    if state.has_submission:
        profile = get_own_profile(db, state.user_id)
        vm["profile"] = profile
        vm["profile_text"] = profile.profile_text or ""
    if request.method == "POST":
        vm["profile_text"] = request.form.get("profile_text") or ""
        try:
            submit_profile(
                db,
                state.user_id,
                request.form.get("profile_text"),
                uploaded_images(request.files, limit),
                get_storage(),
                max_images=limit,
            )
        except DomainError as e:
            vm["errors"] = _messages(e)
            return render_template("submit.html", vm=vm), 400
        flash("Your profile was submitted for review")
        return redirect("/my-reviews")
    return render_template("submit.html", vm=vm)


@bp.get("/my-reviews")
def my_reviews():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    try:
        page_req = parse_page_params(request.args)
    except PaginationError:
        return redirect("/my-reviews")
    try:
        profile, items, total, analytics = reviews_for_owner(get_session(), state.user_id, page_req)
    except NotFoundError:
        return redirect("/submit")
    vm = {
        "state": state,
        "profile": profile,
        "reviews": items,
        "total": total,
        "page": page_req["page"],
        "pages": (total + page_req["size"] - 1) // page_req["size"] if total else 0,
        "analytics": analytics,
    }
    return render_template("my_reviews.html", vm=vm)


# ----------------------------------------------------------------------------
# Reviewer pages
# ----------------------------------------------------------------------------


@bp.route("/review", methods=["GET", "POST"])
def review():
    state, target = _guard()
    if target:
        return redirect(target)
    assert state is not None
    db = get_session()
    vm: dict[str, object] = {"state": state, "min_feedback": MIN_FEEDBACK_LENGTH, "rating": None, "feedback": ""}
    if request.method == "POST":
        profile_id = request.form.get("profile_id")
        try:
            submit_review(db, state.user_id, profile_id, request.form.get("rating"), request.form.get("feedback"))
        except (DomainError, AuthzError) as e:
            vm["errors"] = _messages(e)
            vm["rating"] = request.form.get("rating")
            vm["feedback"] = request.form.get("feedback") or ""
            try:
                vm["profile"], vm["owner"] = get_profile(db, int(profile_id or 0))
            except (NotFoundError, ValueError):
                vm["profile"], vm["owner"] = None, None
            return render_template("review.html", vm=vm), 400
        flash("Review submitted. Thank you!")
        return redirect("/review")
    found = next_profile_for_review(db, state.user_id)
    vm["profile"], vm["owner"] = found if found else (None, None)
    return render_template("review.html", vm=vm)


@bp.get("/profile/<int:profile_id>")
def profile_detail(profile_id: int):
    state, target = _guard()
    if target:
        return redirect(target)
    try:
        profile, owner = get_profile(get_session(), profile_id)
    except NotFoundError:
        vm = {
            "state": state,
            "title": "Profile not found",
            "message": "This profile does not exist or has been removed.",
            "back": landing_for(state),
        }
        return render_template("not_found.html", vm=vm), 404
    return render_template("profile.html", vm={"state": state, "profile": profile, "owner": owner})
