"""Diffwatch configuration.

DiffwatchConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from diffwatch._errors import ConfigError

# Directory basenames that recursive watching never descends into.
# Matched exactly and case-sensitively against each directory's name.
EXCLUDED_DIRS: frozenset[str] = frozenset({
    ".git",
    "node_modules",
    ".cache",
    ".npm",
    ".cargo",
    ".rustup",
    "__pycache__",
    ".pytest_cache",
    ".venv",
    "venv",
    ".tox",
    "dist",
    "build",
    "target",  # Rust build output
    ".next",  # Next.js
    ".nuxt",  # Nuxt.js
    "vendor",  # Go/PHP dependencies
    ".gradle",
    ".m2",
    ".idea",
    ".vscode",
})

DEFAULT_DEBOUNCE_MS = 100
DEFAULT_EVENT_BUFFER = 100
DEFAULT_ERROR_BUFFER = 10
DEFAULT_MAX_DIFF_BYTES = 1024 * 1024
DEFAULT_CONTEXT_LINES = 3


@dataclass(frozen=True, slots=True)
class DiffwatchConfig:
    """Configuration for a diffwatch session.

    Attributes:
        root: Path to watch. Always resolved to an absolute path on construction.
        recursive: Subscribe to every non-excluded directory below ``root``.
        debounce_ms: Quiet period per path before an event is emitted.
        event_buffer: Capacity of the event queue; events beyond it are dropped.
        error_buffer: Capacity of the error queue; errors beyond it are dropped.
        max_diff_bytes: Files larger than this are not read for diffing.
        context_lines: Context window of the unified diff text.
        poll_step_ms: How often the notification backend checks for new changes.
        exclude_dirs: Directory basenames skipped during recursive subscription.

    """

    root: Path = field(default_factory=Path.cwd)
    recursive: bool = False
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    event_buffer: int = DEFAULT_EVENT_BUFFER
    error_buffer: int = DEFAULT_ERROR_BUFFER
    max_diff_bytes: int = DEFAULT_MAX_DIFF_BYTES
    context_lines: int = DEFAULT_CONTEXT_LINES
    poll_step_ms: int = 50
    exclude_dirs: frozenset[str] = EXCLUDED_DIRS

    def __post_init__(self) -> None:
        if not isinstance(self.root, Path):
            object.__setattr__(self, "root", Path(self.root))
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if not isinstance(self.exclude_dirs, frozenset):
            object.__setattr__(self, "exclude_dirs", frozenset(self.exclude_dirs))

        for name in ("debounce_ms", "event_buffer", "error_buffer", "max_diff_bytes", "poll_step_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ConfigError(msg)
        if not isinstance(self.context_lines, int) or self.context_lines < 0:
            msg = f"context_lines must be a non-negative integer, got {self.context_lines!r}"
            raise ConfigError(msg)

    @property
    def debounce_seconds(self) -> float:
        """Debounce delay in seconds, as taken by the Debouncer."""
        return self.debounce_ms / 1000
