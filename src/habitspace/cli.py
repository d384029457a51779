"""Command line interface for the HabitSpace insight engine."""

from __future__ import annotations

import json
import uuid

import click

from .context import EngineContext, create_engine_context
from .errors import HabitNotFoundError, StoreError, SuggestionNotFoundError
from .logging_config import setup_logging
from .models.habit import Habit, HabitFrequency
from .models.suggestion import Suggestion, SuggestionType

FREQUENCY_CHOICES = [f.value for f in HabitFrequency]


def _context(ctx: click.Context) -> EngineContext:
    return ctx.ensure_object(dict)["context"]


def _resolve_habit(context: EngineContext, ref: str) -> Habit:
    """Find a habit by full id, id prefix or case-insensitive title."""

    habits = context.store.list_habits(include_inactive=True)
    try:
        wanted = uuid.UUID(ref)
    except ValueError:
        wanted = None

    for habit in habits:
        if habit.id == wanted or habit.title.lower() == ref.lower():
            return habit
    matches = [h for h in habits if str(h.id).startswith(ref.lower())]
    if len(matches) == 1:
        return matches[0]
    raise click.ClickException(f"No unique habit matches {ref!r}")


def _resolve_suggestion_id(context: EngineContext, ref: str) -> uuid.UUID:
    """Expand an id prefix against open suggestions and answered history."""

    try:
        return uuid.UUID(ref)
    except ValueError:
        pass
    known = {s.id for s in context.engine.suggestions}
    known.update(item.suggestion_id for item in context.store.list_history())
    matches = [sid for sid in known if str(sid).startswith(ref.lower())]
    if len(matches) == 1:
        return matches[0]
    raise click.ClickException(f"No unique suggestion matches {ref!r}")


def _format_suggestion(suggestion: Suggestion) -> str:
    kind = SuggestionType(suggestion.type).display_name
    return (
        f"{str(suggestion.id)[:8]}  [{kind}] {suggestion.title}\n"
        f"          {suggestion.message} (priority {suggestion.priority:.2f})"
    )


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Enable log output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Track habits and surface suggestions from your history."""

    context = create_engine_context()
    if verbose:
        setup_logging(context.config)
    ctx.ensure_object(dict)["context"] = context
    ctx.call_on_close(context.close)


@cli.command("add-habit")
@click.argument("title")
@click.option(
    "--frequency",
    type=click.Choice(FREQUENCY_CHOICES),
    default=HabitFrequency.DAILY.value,
    show_default=True,
)
@click.pass_context
def add_habit(ctx: click.Context, title: str, frequency: str) -> None:
    """Create a new habit."""

    try:
        habit = _context(ctx).engine.create_habit(title, HabitFrequency(frequency))
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="TITLE") from exc
    click.echo(f"Created {habit.title} ({habit.frequency.display_name}) {habit.id}")


@cli.command()
@click.argument("habit")
@click.pass_context
def complete(ctx: click.Context, habit: str) -> None:
    """Mark a habit completed now."""

    context = _context(ctx)
    target = _resolve_habit(context, habit)
    context.engine.complete_habit(target.id)
    streak = context.store.get_habit(target.id).streak
    click.echo(f"Completed {target.title}. Streak: {streak}")


@cli.command()
@click.argument("habit")
@click.pass_context
def skip(ctx: click.Context, habit: str) -> None:
    """Skip a habit for today."""

    context = _context(ctx)
    target = _resolve_habit(context, habit)
    context.engine.skip_habit(target.id)
    click.echo(f"Skipped {target.title} for today")


@cli.command()
@click.argument("habit")
@click.pass_context
def undo(ctx: click.Context, habit: str) -> None:
    """Remove today's entries for a habit."""

    context = _context(ctx)
    target = _resolve_habit(context, habit)
    removed = context.engine.reset_habit_for_today(target.id)
    click.echo(f"Removed {removed} entries for {target.title}")


@cli.command()
@click.pass_context
def streaks(ctx: click.Context) -> None:
    """Recalculate and list every habit's streak."""

    context = _context(ctx)
    results = context.engine.recalculate_all_streaks()
    for habit in context.store.list_habits(include_inactive=True):
        if habit.id in results:
            click.echo(f"{habit.title}: {results[habit.id]}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show weekly rate, longest streak and today's completions."""

    snapshot = _context(ctx).engine.compute_analytics()
    if as_json:
        click.echo(json.dumps(snapshot.as_dict()))
        return
    click.echo(f"Weekly completion: {snapshot.weekly_rate:.0%}")
    click.echo(f"Longest streak: {snapshot.longest_streak}")
    click.echo(f"Completed today: {snapshot.today_count}")


@cli.command()
@click.pass_context
def analyze(ctx: click.Context) -> None:
    """Run an analysis cycle now."""

    created = _context(ctx).engine.request_analysis()
    if not created:
        click.echo("No new suggestions")
        return
    for suggestion in created:
        click.echo(_format_suggestion(suggestion))


@cli.command()
@click.pass_context
def suggestions(ctx: click.Context) -> None:
    """List open suggestions, highest priority first."""

    open_set = sorted(_context(ctx).engine.suggestions, key=lambda s: s.priority, reverse=True)
    if not open_set:
        click.echo("No open suggestions")
        return
    for suggestion in open_set:
        click.echo(_format_suggestion(suggestion))


@cli.command()
@click.argument("suggestion")
@click.pass_context
def accept(ctx: click.Context, suggestion: str) -> None:
    """Accept an open suggestion."""

    context = _context(ctx)
    try:
        accepted = context.engine.accept_suggestion(_resolve_suggestion_id(context, suggestion))
    except SuggestionNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Accepted: {accepted.title}")


@cli.command()
@click.argument("suggestion")
@click.pass_context
def dismiss(ctx: click.Context, suggestion: str) -> None:
    """Dismiss an open suggestion."""

    context = _context(ctx)
    try:
        dismissed = context.engine.dismiss_suggestion(_resolve_suggestion_id(context, suggestion))
    except SuggestionNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Dismissed: {dismissed.title}")


@cli.command()
@click.argument("suggestion")
@click.option("--helpful/--not-helpful", default=True, help="Was the suggestion helpful?")
@click.option("--comment", default=None, help="Optional free-text comment")
@click.pass_context
def feedback(ctx: click.Context, suggestion: str, helpful: bool, comment: str | None) -> None:
    """Rate a suggestion, adjusting how often its kind is surfaced."""

    context = _context(ctx)
    try:
        weight = context.engine.record_feedback(
            _resolve_suggestion_id(context, suggestion), helpful, comment
        )
    except SuggestionNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Thanks! Weight is now {weight:.1f}")


def main() -> None:
    try:
        cli(obj={})
    except (StoreError, HabitNotFoundError) as exc:
        raise SystemExit(f"Error: {exc}") from exc


__all__ = ["cli", "main"]
