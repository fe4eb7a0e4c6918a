from __future__ import annotations

import os
import secrets
import threading
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Form, Depends, HTTPException, status
from fastapi import Body
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from nosmoke import (
    Clock,
    JsonFileStore,
    Profile,
    QuitTracker,
    SystemClock,
    load_profile,
    read_quit_date,
    state_path,
    workspace_root,
)
from nosmoke.formatting import (
    benefit_lines,
    format_date,
    format_days,
    format_elapsed,
    format_progress,
    next_check_in_text,
)
from nosmoke.logconfig import configure_logging, get_logger
from nosmoke.models import MutationResult

logger = get_logger(__name__)

# Requests run in a threadpool; the tracker assumes exclusive access.
_lock = threading.Lock()


# ── Tracker wiring ────────────────────────────────────────────

def _make_clock(profile: Profile) -> Clock:
    return SystemClock(profile.tz())


def _open_tracker() -> tuple[QuitTracker, Profile]:
    root = workspace_root()
    profile = load_profile(root)
    tracker = QuitTracker(JsonFileStore(state_path(root)), clock=_make_clock(profile))
    return tracker, profile


def _status_payload(tracker: QuitTracker) -> dict[str, Any]:
    return {
        "hasSession": tracker.has_session,
        "status": tracker.status().to_dict() if tracker.has_session else None,
        "loadWarnings": [w.to_dict() for w in tracker.load_warnings],
    }


def _mutation_payload(tracker: QuitTracker, result: MutationResult) -> dict[str, Any]:
    return {"ok": True, "result": result.to_dict(), **_status_payload(tracker)}


# ── HTML helpers ──────────────────────────────────────────────

def _escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


CSS = """
body { font-family: -apple-system, system-ui, sans-serif; background: #f2f2f7; margin: 0; }
.container { max-width: 560px; margin: 0 auto; padding: 16px; }
.card { background: #fff; border-radius: 15px; padding: 16px; margin: 0 0 20px 0; box-shadow: 0 2px 5px rgba(0,0,0,0.1); }
.days { font-size: 48px; font-weight: bold; text-align: center; }
.muted { color: #6b6b70; }
.small { font-size: 13px; }
.center { text-align: center; }
.error { color: #c0392b; background: rgba(192,57,43,0.08); padding: 8px; border-radius: 6px; }
.done { color: #2e8b57; font-weight: bold; }
progress { width: 100%; height: 12px; }
button { background: #007aff; color: #fff; border: 0; border-radius: 10px; padding: 10px 16px; font-size: 16px; width: 100%; }
button.danger { background: #ff3b30; }
"""


def _page(body: str) -> str:
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>NoSmoke Days</title>
  <style>{CSS}</style>
</head>
<body>
  <div class="container">
{body}
  </div>
</body>
</html>"""


def _errors_html(errors: list[str]) -> str:
    if not errors:
        return ""
    return "".join(f'<div class="error">{_escape(e)}</div>' for e in errors)


def _date_input_value(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M")


def _render_setup(tracker: QuitTracker, errors: list[str] | None = None) -> str:
    now = tracker.clock.now()
    return _page(f"""
    <section class="card center">
      <h1>Set your quit date</h1>
      <p class="muted">Choose the date and time you stopped smoking.</p>
      {_errors_html(errors or [])}
      <form method="post" action="/setup">
        <input type="datetime-local" name="quit_date" value="{_date_input_value(now)}" />
        <p><button type="submit">Start my smoke-free journey</button></p>
      </form>
    </section>""")


def _render_dashboard(tracker: QuitTracker, profile: Profile, errors: list[str] | None = None) -> str:
    st = tracker.status()
    fmt = profile.date_format

    if st.has_checked_in_today:
        checkin_html = f"""
        <div class="done center">&#10003; Checked in today</div>
        <div class="muted small center">{_escape(next_check_in_text(st.next_eligible, st.now, fmt))}</div>"""
    elif st.can_check_in:
        checkin_html = """
        <form method="post" action="/checkin"><button type="submit">Check in</button></form>"""
    else:
        checkin_html = f"""
        <div class="muted center">{_escape(next_check_in_text(st.next_eligible, st.now, fmt))}</div>"""

    benefits = "".join(f"<li>{_escape(line)}</li>" for line in benefit_lines(st.benefits))

    return _page(f"""
    <section class="card center">
      <div class="muted">You have been smoke-free for</div>
      <div class="days">{_escape(format_days(st.elapsed_days))}</div>
      <div class="muted">{_escape(format_elapsed(st.elapsed))}</div>
      <div class="muted small">Since {_escape(format_date(st.quit_instant, fmt))}</div>
    </section>

    <section class="card">
      <h2>Progress</h2>
      <progress value="{st.milestone.progress:.4f}" max="1"></progress>
      <div class="muted small" style="text-align:right">{_escape(format_progress(st.milestone))}</div>
    </section>

    <section class="card">
      <h2>Daily check-in</h2>
      {checkin_html}
      <div class="muted small">Total check-ins: {st.streak_count}</div>
    </section>

    <section class="card">
      <h2>Health improvements</h2>
      <ul>{benefits}</ul>
    </section>

    <section class="card">
      <details {"open" if errors else ""}>
        <summary><b>Start over</b></summary>
        <p class="muted small">This restarts the timer and clears every check-in.</p>
        {_errors_html(errors or [])}
        <form method="post" action="/reset">
          <input type="datetime-local" name="quit_date" value="{_date_input_value(st.now)}" />
          <p><button class="danger" type="submit">Confirm restart</button></p>
        </form>
      </details>
    </section>""")


# ── Auth ──────────────────────────────────────────────────────

app = FastAPI(title="NoSmoke Days", version="0.1.0")

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("NOSMOKE_USERNAME", "")
    expected_password = os.environ.get("NOSMOKE_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Pages ─────────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/", response_class=HTMLResponse)
def index(username: str = Depends(get_current_user)) -> HTMLResponse:
    with _lock:
        tracker, profile = _open_tracker()
        if not tracker.has_session:
            return HTMLResponse(_render_setup(tracker))
        return HTMLResponse(_render_dashboard(tracker, profile))


@app.post("/setup")
def setup(quit_date: str = Form(...), username: str = Depends(get_current_user)) -> Any:
    with _lock:
        tracker, _profile = _open_tracker()
        if tracker.has_session:
            return RedirectResponse(url="/", status_code=303)
        value, errors = read_quit_date(quit_date, tracker.clock.now())
        if errors:
            logger.info("quit_date.rejected", source="setup", errors=errors)
            return HTMLResponse(_render_setup(tracker, errors), status_code=400)
        tracker.set_initial_quit_date(value)
    return RedirectResponse(url="/", status_code=303)


@app.post("/checkin")
def checkin(username: str = Depends(get_current_user)) -> RedirectResponse:
    with _lock:
        tracker, _profile = _open_tracker()
        if tracker.has_session:
            tracker.check_in()
    return RedirectResponse(url="/", status_code=303)


@app.post("/reset")
def reset(quit_date: str = Form(...), username: str = Depends(get_current_user)) -> Any:
    with _lock:
        tracker, profile = _open_tracker()
        value, errors = read_quit_date(quit_date, tracker.clock.now())
        if errors:
            logger.info("quit_date.rejected", source="reset", errors=errors)
            page = _render_dashboard(tracker, profile, errors) if tracker.has_session else _render_setup(tracker, errors)
            return HTMLResponse(page, status_code=400)
        tracker.reset(value)
    return RedirectResponse(url="/", status_code=303)


# ── JSON API ──────────────────────────────────────────────────

@app.get("/api/status")
def api_status(username: str = Depends(get_current_user)) -> dict[str, Any]:
    """All derived facts at the current instant."""
    with _lock:
        tracker, _profile = _open_tracker()
        return _status_payload(tracker)


@app.post("/api/checkin")
def api_checkin(username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Check in now. Not eligible -> ok with applied=false."""
    with _lock:
        tracker, _profile = _open_tracker()
        if not tracker.has_session:
            raise HTTPException(status_code=409, detail="No quit date set yet")
        result = tracker.check_in()
        return _mutation_payload(tracker, result)


def _quit_date_from_payload(tracker: QuitTracker, payload: dict[str, Any]) -> datetime:
    value, errors = read_quit_date(str(payload.get("quit_date", "") or ""), tracker.clock.now())
    if errors:
        logger.info("quit_date.rejected", source="api", errors=errors)
        raise HTTPException(status_code=400, detail=errors)
    return value


@app.post("/api/setup")
def api_setup(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """First-time setup with {"quit_date": "..."}."""
    with _lock:
        tracker, _profile = _open_tracker()
        if tracker.has_session:
            raise HTTPException(status_code=409, detail="Quit date already set; use /api/reset")
        value = _quit_date_from_payload(tracker, payload)
        result = tracker.set_initial_quit_date(value)
        return _mutation_payload(tracker, result)


@app.post("/api/reset")
def api_reset(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user)) -> dict[str, Any]:
    """Restart from {"quit_date": "..."} and clear all check-ins."""
    with _lock:
        tracker, _profile = _open_tracker()
        value = _quit_date_from_payload(tracker, payload)
        result = tracker.reset(value)
        return _mutation_payload(tracker, result)


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    import uvicorn

    profile = load_profile()
    configure_logging(profile.log_level, format_json=profile.log_json)
    uvicorn.run(
        app,
        host=os.environ.get("NOSMOKE_HOST", "127.0.0.1"),
        port=int(os.environ.get("NOSMOKE_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
