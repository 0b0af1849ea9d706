"""
Progress bar for applying pending edits, built on the Rich library.

Usage:
    from tagstage.core.progress import ApplyProgressBar

    with ApplyProgressBar(total=len(edits)) as progress:
        result = engine.apply_edits(ids, on_edit_done=progress.update)
"""

from typing import Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


class SizedTextColumn(ProgressColumn):
    """
    Text column with a fixed width.

    Text longer than the width is truncated with the given overflow method,
    so long file names don't push the bar around.
    """

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = None,
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.justify: JustifyMethod = justify
        self.style = style
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class ApplyProgressBar:
    """
    Progress bar for writing pending edits to disk.

    Displays:
    - Description (e.g., "Applying")
    - Status: ✓ applied, ✗ failed
    - Progress bar
    - Percentage

    Example:
        Applying        ✓ 12  ✗ 1              ━━━━━━━━━━━━━━━━━  64%
    """

    def __init__(self, total: int, description: str = "Applying", status_width: int = 25):
        self.total = total
        self.description = description
        self.completed = 0
        self.applied = 0
        self.failed = 0

        self.console = get_console()

        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", overflow="ellipsis", width=15),
            SizedTextColumn("{task.fields[status]}", width=status_width, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "ApplyProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def _get_status_text(self) -> str:
        return f"[green]✓ {self.applied}[/green]  [red]✗ {self.failed}[/red]"

    def update(self, success: bool) -> None:
        """
        Record one processed edit.

        Args:
            success: Whether the comment was written to the file.
        """
        self.completed += 1
        if success:
            self.applied += 1
        else:
            self.failed += 1

        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )
