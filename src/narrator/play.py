#!/usr/bin/env python
"""Run narrated werewolf games from the console.

Usage:
    narrator                             # Simulated game, stub narrator
    narrator --seed 42 --players 10      # Reproducible game with seed
    narrator --watch                     # Print announcements as they happen
    narrator --interactive               # Narrate yourself at the console
    narrator --validate --games 100      # Stress test with validators
"""

import argparse
import asyncio
import logging
import random
import sys
from collections import Counter
from typing import Optional

# Enable Windows console colors
if sys.platform == "win32":
    import colorama
    colorama.init()

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from narrator.ai.stub_ai import StubNarrator
from narrator.config import Settings
from narrator.engine.game_session import GameSession
from narrator.engine.narrator_game import NarratorGame
from narrator.engine.validator import CollectingValidator, GameValidator
from narrator.exceptions import NarratorError
from narrator.replay.timers import PhaseTimerManager
from narrator.ui.interactive import InteractiveNarrator


def create_player_names(count: int) -> list[str]:
    return [f"Player {seat}" for seat in range(count)]


def create_session(seed: int, settings: Optional[Settings] = None, loop_timers: bool = False) -> GameSession:
    """Session with a seeded generator; timers on the running loop when asked."""
    settings = settings or Settings()
    timers = None
    if loop_timers:
        timers = PhaseTimerManager(
            loop=asyncio.get_running_loop(),
            history_limit=settings.timer_history_limit,
        )
    return GameSession(settings=settings, rng=random.Random(seed), timers=timers)


async def run_simulation(
    seed: int,
    player_count: int,
    settings: Optional[Settings] = None,
    validator: Optional[GameValidator] = None,
    watch_mode: bool = False,
    log_file: Optional[str] = None,
) -> Optional[str]:
    """Run one game with the stub narrator.

    Returns:
        The winner's value, or None when the day limit ended the game
    """
    console = Console()
    session = create_session(seed, settings)
    on_message = None
    if watch_mode:
        console.print(f"\n[bold cyan]Watching simulation (seed {seed})...[/bold cyan]\n")
        on_message = lambda message: console.print(f"[cyan]>[/cyan] {message}")

    game = NarratorGame(
        session,
        StubNarrator(seed=seed),
        validator=validator,
        on_message=on_message,
    )
    actions, winner = await game.run(create_player_names(player_count))

    console.print(Panel(
        f"[bold]Game Over[/bold]\n\n"
        f"Winner: {winner.value if winner else 'none'}\n"
        f"Days: {session.state.day_count}, actions logged: {len(actions)}",
        title="Result"
    ))

    if log_file:
        try:
            session.action_log.save_to_file(log_file)
            console.print(f"Action log saved to {log_file}")
        except OSError as e:
            console.print(f"[red]Failed to save log: {e}[/red]")

    return winner.value if winner else None


async def run_interactive(seed: int, player_count: int, settings: Optional[Settings] = None) -> None:
    """Narrate a game yourself; timers run on the event loop."""
    console = Console()
    narrator = InteractiveNarrator(console=console)
    session = create_session(seed, settings, loop_timers=True)
    game = NarratorGame(session, narrator, on_message=narrator.show)
    _, winner = await game.run(create_player_names(player_count))
    narrator.show_overview(session.overview())
    console.print(Panel(f"Winner: {winner.value if winner else 'none'}", title="Result"))


def run_stress_test(
    num_games: int,
    player_count: int,
    seed_base: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Run many simulated games with validators and report results."""
    console = Console()

    if seed_base is None:
        seed_base = random.randint(1, 1000000)

    console.print(f"\n[bold]Running stress test: {num_games} games...[/bold]")
    console.print(f"Seed base: {seed_base}")

    async def run_one(game_num: int) -> dict:
        seed = seed_base + game_num
        session = create_session(seed, settings)
        validator = CollectingValidator()
        game = NarratorGame(session, StubNarrator(seed=seed), validator=validator)
        try:
            _, winner = await game.run(create_player_names(player_count))
        except NarratorError as e:
            return {"seed": seed, "winner": None, "violations": [], "error": str(e)}
        return {
            "seed": seed,
            "winner": winner.value if winner else None,
            "days": session.state.day_count,
            "violations": validator.get_violations(),
            "error": None,
        }

    async def run_all():
        return [await run_one(i) for i in range(num_games)]

    results = asyncio.run(run_all())

    completed = [r for r in results if not r["error"]]
    errors = [r for r in results if r["error"]]
    violations = [v for r in completed for v in r["violations"]]

    table = Table(title="Stress Test Report")
    table.add_column("Winner")
    table.add_column("Games", justify="right")
    table.add_column("Share", justify="right")
    winner_counts = Counter(r["winner"] or "none" for r in completed)
    for winner, count in sorted(winner_counts.items()):
        table.add_row(winner, str(count), f"{count / num_games * 100:.1f}%")
    console.print(table)

    console.print(f"Completed: {len(completed)}, errors: {len(errors)}")
    by_rule = Counter(v.rule_id for v in violations)
    console.print("\nViolations:")
    if by_rule:
        for rule_id, count in sorted(by_rule.items()):
            console.print(f"  {rule_id}: {count}")
    else:
        console.print("  None")

    for e in errors[:5]:
        console.print(f"  Seed {e['seed']}: {e['error']}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Werewolf narrator - phase machine, random events and replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible games")
    parser.add_argument("--players", type=int, default=8, help="Number of players (default: 8)")
    parser.add_argument("--watch", action="store_true", help="Print announcements during the simulation")
    parser.add_argument("--interactive", action="store_true", help="Narrate the game yourself")
    parser.add_argument("--validate", action="store_true", help="Enable the in-game validator")
    parser.add_argument("--games", type=int, default=None, help="Run N games with validators (stress test mode)")
    parser.add_argument("--storage", type=str, default=None, help="JSON file for saved sessions and event state")
    parser.add_argument("--log-file", type=str, default=None, help="YAML file to save the action log")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    settings = Settings()
    if args.storage:
        settings = settings.model_copy(update={"storage_path": args.storage})

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(name)s: %(message)s",
    )

    if args.seed is None:
        args.seed = random.randint(1, 1000000)

    if args.games is not None and args.games < 1:
        print("Error: --games must be a positive integer")
        return 1
    if args.players < 4:
        print("Error: --players must be at least 4")
        return 1

    validator: Optional[GameValidator] = CollectingValidator() if args.validate else None

    if args.games is not None:
        run_stress_test(args.games, args.players, seed_base=args.seed, settings=settings)
    elif args.interactive:
        asyncio.run(run_interactive(args.seed, args.players, settings=settings))
    else:
        asyncio.run(run_simulation(
            args.seed,
            args.players,
            settings=settings,
            validator=validator,
            watch_mode=args.watch,
            log_file=args.log_file,
        ))
        if isinstance(validator, CollectingValidator):
            for violation in validator.get_violations():
                print(f"{violation.rule_id}: {violation.message}")

    return 0


if __name__ == "__main__":
    exit(main())
