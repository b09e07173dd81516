"""Shared type definitions for diffwatch."""

from collections.abc import Callable

# Debouncer key (an absolute file path in practice)
type DebounceKey = str

# Zero-argument callback scheduled by the debouncer
type Callback = Callable[[], None]

# Absolute path of a subscribed directory
type WatchedDir = str
