"""Interactive console narrator.

Uses rich to present each confirmation to a human narrator and returns
answers in the ChoiceSpec answer format.
"""

from typing import Any, Optional
from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.text import Text
from rich.table import Table
from rich.panel import Panel
from rich.align import Align

from .choices import ChoiceSpec, ChoiceType


class InteractiveNarrator:
    """A human narrator at the console.

    Usage:
        narrator = InteractiveNarrator(console=console)
        game = NarratorGame(session, narrator, on_message=narrator.show)
    """

    def __init__(self, console: Optional[Console] = None, show_prompts: bool = True):
        """Initialize the interactive narrator.

        Args:
            console: Rich Console instance. Creates one if None.
            show_prompts: Show the script line panel before each choice
        """
        self._console = console or Console()
        self._show_prompts = show_prompts

    async def decide(
        self,
        prompt: str,
        hint: Optional[str] = None,
        choices: Optional[ChoiceSpec] = None,
    ) -> str:
        """Ask the narrator to confirm the current step.

        Returns:
            Response string formatted for handler parsing
        """
        self._show_context(prompt, hint)

        if choices is None:
            return await self._acknowledge()
        if choices.choice_type == ChoiceType.SEAT:
            return await self._prompt_seat(choices)
        elif choices.choice_type == ChoiceType.BOOLEAN:
            return await self._prompt_boolean(choices)
        elif choices.choice_type == ChoiceType.TALLY:
            return await self._prompt_tally(choices)
        return await self._prompt_single(choices)

    def show(self, message: str) -> None:
        """Print one announcement."""
        self._console.print(f"[cyan]>[/cyan] {message}")

    def show_overview(self, overview: dict[str, Any]) -> None:
        """Render the session dashboard: living players and active events."""
        table = Table(title=f"{overview['phase']} - night {overview['night']}, day {overview['day']}")
        table.add_column("Seat", width=6)
        table.add_column("Player", justify="left")
        table.add_column("Role")
        table.add_column("Jobs")
        for player in overview["living"]:
            table.add_row(str(player["seat"]), player["name"], player["role"], ", ".join(player["jobs"]))
        self._console.print(table)

        if overview["dead"]:
            self._console.print(f"[dim]Dead: {', '.join(overview['dead'])}[/dim]")
        for modifier in overview["modifiers"]:
            self._console.print(f"[magenta]Active:[/magenta] {modifier['label']}")
        for queued in overview["queued"]:
            self._console.print(f"[magenta]Queued:[/magenta] {queued['label']}")

    async def _acknowledge(self) -> str:
        try:
            Prompt.ask("Press Enter to continue", console=self._console, default="", show_default=False)
        except (KeyboardInterrupt, EOFError):
            pass
        return ""

    async def _prompt_seat(self, choices: ChoiceSpec) -> str:
        """Prompt for seat selection with live player info."""
        table = Table(title="Available Players", show_header=True)
        table.add_column("Option", width=6)
        table.add_column("Seat", width=6)
        table.add_column("Player", justify="left")

        for i, opt in enumerate(choices.options):
            table.add_row(f"[{i + 1}]", f"{opt.seat_hint}", choices.get_seat_display(opt.seat_hint))

        if choices.allow_none:
            table.add_row("[0]", "-", choices.none_display)

        self._console.print(Panel(Align(table, align="center"), title="Select Target"))

        if choices.max_select > 1:
            # Several seats: enter seat numbers directly
            while True:
                try:
                    user_input = Prompt.ask(
                        f"Seats, comma separated (up to {choices.max_select})",
                        console=self._console,
                        default="",
                        show_default=False,
                    )
                    return choices.format_response(user_input)
                except (KeyboardInterrupt, EOFError):
                    return ""

        max_num = len(choices.options)
        while True:
            try:
                user_input = Prompt.ask(f"{choices.prompt} (1-{max_num})", console=self._console)

                try:
                    idx = int(user_input) - 1
                    if 0 <= idx < len(choices.options):
                        return choices.options[idx].value
                    elif choices.allow_none and idx == -1:
                        return ""
                except ValueError:
                    pass

                if choices.format_response(user_input) == "" and choices.allow_none:
                    return ""

                self._console.print(f"[red]Invalid selection. Enter 1-{max_num}[/red]")

            except (KeyboardInterrupt, EOFError):
                return ""

    async def _prompt_boolean(self, choices: ChoiceSpec) -> str:
        """Prompt for yes/no choice."""
        options_text = " / ".join(
            f"[bold][{opt.value.upper()}][/bold] {opt.display}"
            for opt in choices.options
        )
        try:
            user_input = Prompt.ask(
                f"{choices.prompt} ({options_text})",
                console=self._console,
                choices=[opt.value for opt in choices.options],
                show_choices=False,
            )
            return user_input.lower()
        except (KeyboardInterrupt, EOFError):
            return "no"

    async def _prompt_single(self, choices: ChoiceSpec) -> str:
        """Prompt for single choice from options."""
        grid = Table.grid(padding=1)
        grid.add_column()

        for i, opt in enumerate(choices.options):
            grid.add_row(f"[{i + 1}] {opt.display}")

        if choices.allow_none:
            grid.add_row(f"[{len(choices.options) + 1}] {choices.none_display}")

        self._console.print(Panel(grid, title=choices.prompt))

        max_num = len(choices.options) + (1 if choices.allow_none else 0)

        while True:
            try:
                user_input = Prompt.ask(f"Make your choice (1-{max_num})", console=self._console)

                try:
                    idx = int(user_input) - 1
                    if 0 <= idx < len(choices.options):
                        return choices.options[idx].value
                    elif choices.allow_none and idx == len(choices.options):
                        return ""
                except ValueError:
                    pass

                lower_input = user_input.lower()
                for opt in choices.options:
                    if lower_input == opt.display.lower():
                        return opt.value

                self._console.print(f"[red]Invalid choice. Enter 1-{max_num}[/red]")

            except (KeyboardInterrupt, EOFError):
                return ""

    async def _prompt_tally(self, choices: ChoiceSpec) -> str:
        """Ask for the vote count of every candidate."""
        counts = []
        for opt in choices.options:
            try:
                count = IntPrompt.ask(
                    f"Votes for {choices.get_seat_display(opt.seat_hint)}",
                    console=self._console,
                    default=0,
                )
            except (KeyboardInterrupt, EOFError):
                count = 0
            counts.append(f"{opt.seat_hint}:{max(count, 0)}")
        return ",".join(counts)

    def _show_context(self, prompt: str, hint: Optional[str]) -> None:
        """Display the script line and any retry hint."""
        if not self._show_prompts:
            return

        self._console.print(
            Panel(
                Text(prompt),
                title="[bold green]Narrator[/bold green]",
                expand=False,
            )
        )

        if hint:
            self._console.print(
                Panel(
                    Text(hint, style="yellow"),
                    title="[bold red]Please Try Again[/bold red]",
                    expand=False,
                )
            )


# ============================================================================
# Factory function
# ============================================================================

def create_interactive_narrator(console: Optional[Console] = None) -> InteractiveNarrator:
    """Create an interactive narrator for human play."""
    return InteractiveNarrator(console=console)


__all__ = [
    "InteractiveNarrator",
    "create_interactive_narrator",
]
