#!/usr/bin/env python3
"""
  L I F E
  Conway's Game of Life, full-screen in your terminal.

  The grid fills the terminal (one cell per character) unless told
  otherwise, wraps around at the edges, and advances one generation every
  frame until you quit.

  Controls:
    q / Q / ESC   quit

  Options:
    --width/--height   grid size (defaults to the terminal size)
    --density/--seed   random fill
    --pattern NAME     start from a named pattern instead
    --empty            start with nothing (it stays that way)
    --bounded          cells past the edge are dead instead of wrapping
    --delay MS         frame period
    --stats-log PATH   per-generation CSV telemetry
"""

from __future__ import annotations

import argparse
import curses
import os
import shutil
import signal
import sys
import time
from pathlib import Path
from types import FrameType
from typing import IO, ClassVar

from life_grid import (
    BOUNDED,
    DEFAULT_DENSITY,
    PATTERNS,
    TORUS,
    Grid,
    SeedPolicy,
    births_and_deaths,
    initialize,
    step,
)

PROG = "tty-life"

FRAME_DELAY_MS: int = 100
ESCAPE_KEY: int = 27
QUIT_KEYS: frozenset[int] = frozenset({ESCAPE_KEY, ord("q"), ord("Q")})

# Live cells are drawn bold green where the terminal has colours
LIVE_COLOR_PAIR: int = 1


class TerminalControlFailure(RuntimeError):
    """The terminal could not be put into (or kept in) curses mode."""


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes per-generation population telemetry to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,births,deaths\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, gen: int, previous: Grid, current: Grid) -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        born, died = births_and_deaths(previous, current)
        self._fh.write(f"{gen},{t:.3f},{current.population},{born},{died}\n")
        if gen % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Terminal session
# ═══════════════════════════════════════════════════════════════════════

class TerminalSession:
    """
    Owns the curses screen for one run.

    Entering puts the terminal into cbreak mode with echo off, the cursor
    hidden and ``getch`` non-blocking. Leaving undoes all of it, whatever
    way the ``with`` block ends. A failure half-way through entering rolls
    back what was already applied before raising TerminalControlFailure.
    """

    def __init__(self) -> None:
        self.stdscr: curses.window | None = None
        self._cursor_hidden: bool = False

    def __enter__(self) -> curses.window:
        # Don't make ESC wait a full second for a possible escape sequence
        os.environ.setdefault("ESCDELAY", "25")
        # __exit__ never runs if we raise here, so anything at all undoes setup
        try:
            return self._acquire()
        except curses.error as exc:
            self.restore()
            raise TerminalControlFailure(f"cannot take control of the terminal: {exc}") from exc
        except BaseException:
            self.restore()
            raise

    def _acquire(self) -> curses.window:
        self.stdscr = curses.initscr()
        curses.noecho()
        curses.cbreak()
        self.stdscr.keypad(True)
        self.stdscr.nodelay(True)
        self.stdscr.timeout(0)

        # Cosmetic; some terminals can't do either
        try:
            curses.curs_set(0)
            self._cursor_hidden = True
        except curses.error:
            pass
        try:
            curses.start_color()
        except curses.error:
            pass

        self.stdscr.clear()
        return self.stdscr

    def __exit__(self, *exc_info: object) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the terminal back the way we found it. Safe to call twice."""
        if self.stdscr is None:
            return
        stdscr, self.stdscr = self.stdscr, None
        try:
            stdscr.keypad(False)
            curses.echo()
            curses.nocbreak()
            if self._cursor_hidden:
                curses.curs_set(1)
                self._cursor_hidden = False
        except curses.error:
            pass
        finally:
            curses.endwin()


def setup_colors() -> int:
    """Return the attribute used for live cells."""
    try:
        if curses.has_colors():
            curses.use_default_colors()
            curses.init_pair(LIVE_COLOR_PAIR, curses.COLOR_GREEN, -1)
            return curses.color_pair(LIVE_COLOR_PAIR) | curses.A_BOLD
    except curses.error:
        pass
    return curses.A_BOLD


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def render(
    stdscr: curses.window,
    grid: Grid,
    generation: int,
    attr: int = 0,
) -> None:
    """Draw the grid, clipped to the window, with a status line under it."""
    max_y, max_x = stdscr.getmaxyx()
    draw_rows = min(grid.height, max_y)
    draw_cols = min(grid.width, max_x)

    for y, line in enumerate(grid.rows(draw_rows, draw_cols)):
        try:
            stdscr.addstr(y, 0, line, attr)
        except curses.error:
            # Writing the bottom-right cell moves the cursor off-screen
            pass

    if draw_rows < max_y:
        status = f" gen {generation:,}  pop {grid.population:,}  {grid.edges}  q/esc quit "
        try:
            stdscr.addstr(draw_rows, 0, status[:max_x], curses.A_DIM)
        except curses.error:
            pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def poll_quit(stdscr: curses.window) -> bool:
    """Drain pending keys without blocking; True if any of them is a quit key."""
    while True:
        try:
            key = stdscr.getch()
        except curses.error:
            return False
        if key == -1:
            return False
        if key in QUIT_KEYS:
            return True


def run(
    stdscr: curses.window,
    grid: Grid,
    delay: float = FRAME_DELAY_MS / 1000.0,
    attr: int = 0,
    stats: StatsLogger | None = None,
) -> int:
    """Render, poll, step, sleep until a quit key. Returns generations run."""
    generation = 0
    while True:
        stdscr.erase()
        render(stdscr, grid, generation, attr)
        stdscr.refresh()

        if poll_quit(stdscr):
            break

        nxt = step(grid)
        generation += 1
        if stats is not None:
            stats.log(generation, grid, nxt)
        grid = nxt

        time.sleep(delay)
    return generation


# ═══════════════════════════════════════════════════════════════════════
#  Command line
# ═══════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG, description="Conway's Game of Life in the terminal"
    )
    parser.add_argument("--width", type=int, default=None,
                        help="Grid columns (default: terminal width)")
    parser.add_argument("--height", type=int, default=None,
                        help="Grid rows (default: terminal height minus the status line)")
    parser.add_argument("--density", type=float, default=DEFAULT_DENSITY,
                        help=f"Chance a cell starts alive (default: {DEFAULT_DENSITY})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for a reproducible start")
    seeding = parser.add_mutually_exclusive_group()
    seeding.add_argument("--pattern", choices=sorted(PATTERNS), default=None,
                         help="Start from a named pattern in the middle of the grid")
    seeding.add_argument("--empty", action="store_true",
                         help="Start with every cell dead")
    parser.add_argument("--bounded", action="store_true",
                        help="Treat cells beyond the edge as dead instead of wrapping")
    parser.add_argument("--delay", type=int, default=FRAME_DELAY_MS,
                        help=f"Frame period in milliseconds (default: {FRAME_DELAY_MS})")
    parser.add_argument("--stats-log", type=Path, default=None,
                        help="Write per-generation CSV telemetry to this path")
    return parser


def seed_policy_from_args(args: argparse.Namespace) -> SeedPolicy:
    if args.empty:
        return SeedPolicy.empty()
    if args.pattern is not None:
        return SeedPolicy.pattern(args.pattern)
    return SeedPolicy.random(args.density, args.seed)


def has_terminal() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _terminate(signum: int, frame: FrameType | None) -> None:
    # Unwind through the session's __exit__ instead of dying mid-frame
    raise SystemExit(128 + signum)


def cli(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    cols, lines = shutil.get_terminal_size()
    width = args.width if args.width is not None else cols
    height = args.height if args.height is not None else lines - 1
    edges = BOUNDED if args.bounded else TORUS

    # Everything that can be rejected is rejected before curses starts
    try:
        grid = initialize(width, height, seed_policy_from_args(args), edges)
    except ValueError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 2
    if args.delay < 0:
        print(f"{PROG}: delay must not be negative, got {args.delay}", file=sys.stderr)
        return 2

    stats: StatsLogger | None = None
    if args.stats_log is not None:
        stats = StatsLogger(args.stats_log)
        stats.open()

    previous_handler = signal.signal(signal.SIGTERM, _terminate)
    try:
        if not has_terminal():
            raise TerminalControlFailure("stdin and stdout must be a terminal")
        with TerminalSession() as stdscr:
            run(stdscr, grid, args.delay / 1000.0, setup_colors(), stats)
    except TerminalControlFailure as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        if stats is not None:
            stats.close()
        signal.signal(signal.SIGTERM, previous_handler)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
