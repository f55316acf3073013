"""CLI entry point for breather.

Uses Click to expose the ``breather`` command group.  ``breather sit`` runs
a session in the foreground; the other subcommands inspect history and
manage settings.
"""

from __future__ import annotations

import os
import signal
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TypeVar

import click
import yaml

import breather
from breather.config import (
    DURATION_CHOICES,
    Settings,
    default_settings_path,
    load_settings,
    save_settings,
)
from breather.core.bell import make_bell
from breather.core.display import format_clock, format_duration, format_minutes
from breather.core.history import JsonHistory
from breather.core.session import MeditationSession
from breather.core.timer import InvalidConfigurationError, SessionSnapshot, SessionStatus
from breather.logging_utils import setup_logging

T = TypeVar("T")


@dataclass
class AppContext:
    settings_path: str
    settings: Settings


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``InvalidConfigurationError`` to a CLI error."""
    try:
        return action()
    except InvalidConfigurationError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _render(snapshot: SessionSnapshot) -> None:
    suffix = " (paused)" if snapshot.status == SessionStatus.PAUSED else ""
    click.echo(f"\r{format_clock(snapshot.remaining_seconds)} remaining{suffix}   ", nl=False)


def _wait_until_finished(session: MeditationSession, interval: float) -> None:
    """Block until the session finishes.  Ctrl-C pauses and asks what next."""
    while session.status != SessionStatus.FINISHED:
        try:
            time.sleep(interval)
        except KeyboardInterrupt:
            session.pause()
            choice = click.prompt(
                "\nPaused. [r]esume or [f]inish",
                type=click.Choice(["r", "f"]),
                default="r",
            )
            if choice == "f":
                session.finish()
            else:
                session.resume()


@click.group()
@click.version_option(version=breather.__version__, prog_name="breather")
@click.option(
    "--config",
    "config_path",
    envvar="BREATHER_CONFIG",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default ~/.config/breather/settings.yml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Also log to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """breather: a guided meditation timer."""
    path = config_path or default_settings_path()
    try:
        settings = load_settings(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Could not read settings from {path}: {exc}")
    setup_logging(os.path.join(settings.data_dir, "logs"), verbose=verbose)
    ctx.obj = AppContext(settings_path=path, settings=settings)


@cli.command()
@click.argument("minutes", type=int, required=False)
@click.option("--silent", is_flag=True, help="Do not ring any bells.")
@click.pass_obj
def sit(app: AppContext, minutes: Optional[int], silent: bool) -> None:
    """Meditate for MINUTES minutes (default from settings).

    Press Ctrl-C to pause; you can then resume or finish early.
    """
    settings = app.settings
    minutes = minutes if minutes is not None else settings.default_minutes
    store = JsonHistory(Path(settings.data_dir))
    session = MeditationSession(
        bell=make_bell(settings.sound_file, silent=silent),
        history=store,
        tick_interval=settings.tick_interval,
    )
    session.subscribe(_render)

    # SIGCONT arrives when a suspended (Ctrl-Z) process is brought back.
    sigcont = getattr(signal, "SIGCONT", None)
    previous = None
    if sigcont is not None:
        previous = signal.signal(sigcont, lambda *_: session.on_became_active())

    try:
        _run(lambda: session.start(minutes * 60, settings.enabled_cues()))
        click.echo(f"Session started: {format_minutes(minutes)}")
        _wait_until_finished(session, settings.tick_interval)
    finally:
        session.finish()
        session.close()
        if sigcont is not None:
            signal.signal(sigcont, previous or signal.SIG_DFL)

    click.echo("")
    if session.last_session_duration > 0:
        click.echo(f"Session complete: {format_duration(session.last_session_duration)}")
        click.echo(f"Today: {format_duration(store.total_for_day())}")
    else:
        click.echo("Session ended before any time was meditated")


@cli.command()
@click.option("--today", is_flag=True, help="Only show today's sessions.")
@click.pass_obj
def history(app: AppContext, today: bool) -> None:
    """List recorded sessions."""
    store = JsonHistory(Path(app.settings.data_dir))
    if today:
        sessions = store.sessions_on(datetime.now().date())
    else:
        sessions = store.sessions()
    if not sessions:
        click.echo("No sessions recorded")
        return

    for entry in sessions:
        started = datetime.fromtimestamp(entry.start_time).strftime("%Y-%m-%d %H:%M")
        click.echo(f"{started}  {format_duration(entry.duration)}")
    click.echo(f"Total: {format_duration(sum(s.duration for s in sessions))}")


@cli.command()
@click.option("--start-end/--no-start-end", default=None, help="Bell at start and end.")
@click.option("--halfway/--no-halfway", default=None, help="Bell at the halfway point.")
@click.option("--every-minute/--no-every-minute", default=None, help="Bell every minute.")
@click.option("--minutes", type=click.Choice([str(m) for m in DURATION_CHOICES]), default=None,
              help="Default session length.")
@click.option("--sound", type=click.Path(dir_okay=False), default=None, help="Bell sound file.")
@click.pass_obj
def settings(
    app: AppContext,
    start_end: Optional[bool],
    halfway: Optional[bool],
    every_minute: Optional[bool],
    minutes: Optional[str],
    sound: Optional[str],
) -> None:
    """Show or change settings."""
    current = app.settings
    changed = False
    if start_end is not None:
        current.start_end_bell, changed = start_end, True
    if halfway is not None:
        current.halfway_bell, changed = halfway, True
    if every_minute is not None:
        current.every_minute_bell, changed = every_minute, True
    if minutes is not None:
        current.default_minutes, changed = int(minutes), True
    if sound is not None:
        current.sound_file, changed = sound, True

    if changed:
        save_settings(app.settings_path, current)
        click.echo(f"Settings saved to {app.settings_path}")

    click.echo(f"Start & end bell: {'on' if current.start_end_bell else 'off'}")
    click.echo(f"Halfway bell: {'on' if current.halfway_bell else 'off'}")
    click.echo(f"Bell every minute: {'on' if current.every_minute_bell else 'off'}")
    click.echo(f"Default length: {format_minutes(current.default_minutes)}")
    click.echo(f"Sound: {current.sound_file or 'terminal bell'}")


@cli.command()
@click.pass_obj
def durations(app: AppContext) -> None:
    """List the available session lengths."""
    for minutes in DURATION_CHOICES:
        marker = "*" if minutes == app.settings.default_minutes else " "
        click.echo(f"{marker} {format_minutes(minutes)}")
