#!/usr/bin/env python3
"""NoSmoke Days TUI — smoke-free counter and daily check-in, powered by Textual."""

from __future__ import annotations

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ProgressBar,
    Static,
)

from nosmoke import (
    JsonFileStore,
    Profile,
    QuitTracker,
    SystemClock,
    load_profile,
    log_path,
    read_quit_date,
    state_path,
    workspace_root,
    write_default_profile,
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

INPUT_FORMAT = "%Y-%m-%d %H:%M"


CSS = """
Screen {
    layout: vertical;
}

.section-title {
    text-style: bold;
    color: $accent;
    margin: 1 0 0 0;
}

.card {
    height: auto;
    padding: 1 2;
    margin: 0 0 1 0;
    border: tall $primary-background-darken-2;
}

#days-label {
    text-style: bold;
    content-align: center middle;
    width: 1fr;
    height: 3;
}

#elapsed-label, #quit-date-label {
    content-align: center middle;
    width: 1fr;
    color: $text-muted;
}

#milestone-label {
    color: $text-muted;
    width: 1fr;
    content-align: right middle;
}

#checked-in-label {
    color: $success;
    text-style: bold;
}

#next-check-in-label, #count-label {
    color: $text-muted;
}

#setup-pane, #reset-pane {
    padding: 1 2;
    height: auto;
}

#reset-pane {
    display: none;
}

.button-row {
    height: auto;
    margin: 1 0 0 0;
}

.error-label {
    color: $error;
}
"""


def _build_tracker() -> tuple[QuitTracker, Profile]:
    root = workspace_root()
    profile = load_profile(root)
    tracker = QuitTracker(JsonFileStore(state_path(root)), clock=SystemClock(profile.tz()))
    return tracker, profile


# ── Panes ──────────────────────────────────────────────────────


class SetupPane(Vertical):
    """First-run pane: pick the quit date."""

    def __init__(self, default_value: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.default_value = default_value

    def compose(self) -> ComposeResult:
        yield Label("Set your quit date", classes="section-title")
        yield Label("When did you stop smoking? (YYYY-MM-DD HH:MM)")
        yield Input(value=self.default_value, placeholder="YYYY-MM-DD HH:MM", id="setup-input")
        yield Label("", id="setup-error", classes="error-label")
        yield Button("Start my smoke-free journey", id="setup-btn", variant="primary")


class ResetPane(Vertical):
    """Restart flow: confirm and choose a new quit date."""

    def compose(self) -> ComposeResult:
        yield Label("Start over", classes="section-title")
        yield Label("This restarts the timer and clears every check-in.")
        yield Input(placeholder="YYYY-MM-DD HH:MM", id="reset-input")
        yield Label("", id="reset-error", classes="error-label")
        yield Horizontal(
            Button("Confirm restart", id="reset-confirm-btn", variant="error"),
            Button("Cancel", id="reset-cancel-btn"),
            classes="button-row",
        )


class Dashboard(VerticalScroll):
    """Counter, progress, check-in and health benefits."""

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label("You have been smoke-free for", id="headline-label"),
            Static(id="days-label"),
            Static(id="elapsed-label"),
            Static(id="quit-date-label"),
            classes="card",
        )
        yield Vertical(
            Label("Progress", classes="section-title"),
            ProgressBar(total=100, show_eta=False, id="milestone-bar"),
            Static(id="milestone-label"),
            classes="card",
        )
        yield Vertical(
            Label("Daily check-in", classes="section-title"),
            Button("Check in", id="checkin-btn", variant="success"),
            Static(id="checked-in-label"),
            Static(id="next-check-in-label"),
            Static(id="count-label"),
            classes="card",
        )
        yield Vertical(
            Label("Health improvements", classes="section-title"),
            Static(id="benefits-label"),
            classes="card",
        )


# ── Main app ───────────────────────────────────────────────────


class NoSmokeApp(App):
    """NoSmoke Days — smoke-free counter with a once-a-day check-in."""

    TITLE = "NoSmoke Days"
    CSS = CSS
    AUTO_FOCUS = None

    BINDINGS = [
        Binding("c", "check_in", "Check in"),
        Binding("r", "show_reset", "Start over"),
        Binding("escape", "cancel_reset", "Back"),
        Binding("q", "quit_app", "Quit"),
    ]

    current_view: reactive[str] = reactive("dashboard")

    def __init__(self) -> None:
        super().__init__()
        self.tracker, self.profile = _build_tracker()
        self.tracker.subscribe(self._on_tracker_changed)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Control which bindings appear in the footer based on context."""
        if action == "check_in":
            return True if self.current_view == "dashboard" else None
        if action == "show_reset":
            return True if self.current_view == "dashboard" else None
        if action == "cancel_reset":
            return True if self.current_view == "reset" else None
        return True

    def compose(self) -> ComposeResult:
        yield Header()
        yield SetupPane(self._now_input(), id="setup-pane")
        yield Dashboard(id="dashboard")
        yield ResetPane(id="reset-pane")
        yield Footer()

    def on_mount(self) -> None:
        for w in self.tracker.load_warnings:
            self.notify(w.message, title="Could not load saved data", severity="warning")
        self._switch_to("dashboard" if self.tracker.has_session else "setup")
        self.set_interval(1.0, self._refresh)

    def _now_input(self) -> str:
        return self.tracker.clock.now().strftime(INPUT_FORMAT)

    # ── Rendering ──────────────────────────────────────────────

    def _on_tracker_changed(self, _tracker: QuitTracker) -> None:
        self._refresh()

    def _refresh(self) -> None:
        """Redraw the dashboard from a fresh status snapshot."""
        if self.current_view != "dashboard":
            return
        st = self.tracker.status()
        fmt = self.profile.date_format

        self.query_one("#days-label", Static).update(format_days(st.elapsed_days))
        self.query_one("#elapsed-label", Static).update(format_elapsed(st.elapsed))
        self.query_one("#quit-date-label", Static).update(f"Since {format_date(st.quit_instant, fmt)}")

        self.query_one("#milestone-bar", ProgressBar).update(progress=round(st.milestone.progress * 100, 1))
        self.query_one("#milestone-label", Static).update(format_progress(st.milestone))

        button = self.query_one("#checkin-btn", Button)
        button.display = st.can_check_in
        self.query_one("#checked-in-label", Static).update("✓ Checked in today" if st.has_checked_in_today else "")
        self.query_one("#next-check-in-label", Static).update(
            "" if st.can_check_in else next_check_in_text(st.next_eligible, st.now, fmt)
        )
        self.query_one("#count-label", Static).update(f"Total check-ins: {st.streak_count}")

        self.query_one("#benefits-label", Static).update("\n".join(benefit_lines(st.benefits)))
        self.sub_title = f"{format_days(st.elapsed_days)}  ✓ {st.streak_count}"

    def _report(self, result: MutationResult, success: str) -> None:
        if result.warnings:
            self.notify(
                "Saved in memory only: " + "; ".join(w.message for w in result.warnings),
                title="Could not save",
                severity="warning",
            )
        elif result.applied:
            self.notify(success, severity="information")

    # ── Actions ────────────────────────────────────────────────

    @on(Button.Pressed, "#checkin-btn")
    def _on_check_in_pressed(self) -> None:
        self.action_check_in()

    def action_check_in(self) -> None:
        if self.current_view != "dashboard":
            return
        result = self.tracker.check_in()
        if not result.applied:
            st = self.tracker.status()
            self.notify(next_check_in_text(st.next_eligible, st.now, self.profile.date_format), severity="warning")
            return
        self._report(result, "Checked in. See you tomorrow!")

    @on(Button.Pressed, "#setup-btn")
    @on(Input.Submitted, "#setup-input")
    def _on_setup_submit(self) -> None:
        if self.tracker.has_session:
            return
        text = self.query_one("#setup-input", Input).value
        value, errors = read_quit_date(text, self.tracker.clock.now())
        if errors:
            self.query_one("#setup-error", Label).update("\n".join(errors))
            return
        self.query_one("#setup-error", Label).update("")
        result = self.tracker.set_initial_quit_date(value)
        self._switch_to("dashboard")
        self._report(result, "Quit date saved.")

    def action_show_reset(self) -> None:
        if self.current_view != "dashboard":
            return
        self.query_one("#reset-input", Input).value = self._now_input()
        self.query_one("#reset-error", Label).update("")
        self._switch_to("reset")
        self.query_one("#reset-input", Input).focus()

    @on(Button.Pressed, "#reset-cancel-btn")
    def action_cancel_reset(self) -> None:
        if self.current_view == "reset":
            self._switch_to("dashboard")

    @on(Button.Pressed, "#reset-confirm-btn")
    @on(Input.Submitted, "#reset-input")
    def _on_reset_confirm(self) -> None:
        text = self.query_one("#reset-input", Input).value
        value, errors = read_quit_date(text, self.tracker.clock.now())
        if errors:
            self.query_one("#reset-error", Label).update("\n".join(errors))
            return
        result = self.tracker.reset(value)
        self._switch_to("dashboard")
        self._report(result, "Timer restarted.")

    def action_quit_app(self) -> None:
        self.tracker.unsubscribe(self._on_tracker_changed)
        self.exit()

    def _switch_to(self, view: str) -> None:
        self.query_one("#setup-pane").display = view == "setup"
        self.query_one("#dashboard").display = view == "dashboard"
        self.query_one("#reset-pane").display = view == "reset"
        self.current_view = view
        self.set_focus(None)
        self.refresh_bindings()
        self._refresh()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    root.mkdir(parents=True, exist_ok=True)
    write_default_profile(root)
    profile = load_profile(root)
    configure_logging(profile.log_level, format_json=profile.log_json, log_file=log_path(root))
    logger.info("app.start", root=str(root))

    app = NoSmokeApp()
    app.run()


if __name__ == "__main__":
    main()
