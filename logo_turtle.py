#!/usr/bin/env python3
"""logo_turtle.py

A line-at-a-time Logo turtle interpreter that records a vector trace and
renders it to SVG.

Key features:
- Case-insensitive commands with the usual short aliases (FD, RT, PU, ...).
- Nested REPEAT blocks, matched by bracket depth and streamed without
  materializing the repeated body.
- Lenient operands: missing or malformed numbers become 0.
- Pluggable color palettes (named, 16-entry indexed, or custom).
- A segment log that keeps the pen color/width in effect when each line was
  drawn, so exports reproduce the whole visual history.
- SVG export and a plain-text session history.

Run:
  python logo_turtle.py render program.logo output.svg
  python logo_turtle.py check program.logo --config config.json
  python logo_turtle.py repl --svg drawing.svg --history session.txt
  python logo_turtle.py --help
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import os
import re
import sys
from collections.abc import Callable, Generator, Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, TextIO, cast

logger = logging.getLogger("logo_turtle")

Point = tuple[float, float]
Operand = float | str

DEFAULT_COLOR = "#000000"


# -------------------------
# Errors / Validation
# -------------------------


class ConfigError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_float(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool),
        f"{path} must be a number",
    )
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


class LogoError(Exception):
    """Base class for diagnostics reported by the interpreter.

    These are collected into an InterpretResult, never raised out of
    Interpreter.interpret().
    """


class LogoSyntaxError(LogoError):
    """Malformed REPEAT: bad count, missing '[' or unbalanced brackets."""


class UnknownCommandError(LogoError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name


class MalformedOperandWarning(LogoError):
    """A number was expected; 0 was used instead."""


class StepLimitError(LogoError):
    pass


# -------------------------
# Command model
# -------------------------


class Keyword(str, Enum):
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    RIGHT = "RIGHT"
    LEFT = "LEFT"
    PENUP = "PENUP"
    PENDOWN = "PENDOWN"
    HOME = "HOME"
    CLEARSCREEN = "CLEARSCREEN"
    SETPENCOLOR = "SETPENCOLOR"
    SETPENWIDTH = "SETPENWIDTH"
    SETHEADING = "SETHEADING"
    SETX = "SETX"
    SETY = "SETY"
    SETXY = "SETXY"
    HIDETURTLE = "HIDETURTLE"
    SHOWTURTLE = "SHOWTURTLE"
    ARC = "ARC"
    XCOR = "XCOR"
    YCOR = "YCOR"
    HEADING = "HEADING"


class OperandKind(Enum):
    NUMBER = "number"
    COLOR = "color"


_NUM = OperandKind.NUMBER

# keyword -> operand kinds, in order
_SIGNATURES: dict[Keyword, tuple[OperandKind, ...]] = {
    Keyword.FORWARD: (_NUM,),
    Keyword.BACKWARD: (_NUM,),
    Keyword.RIGHT: (_NUM,),
    Keyword.LEFT: (_NUM,),
    Keyword.PENUP: (),
    Keyword.PENDOWN: (),
    Keyword.HOME: (),
    Keyword.CLEARSCREEN: (),
    Keyword.SETPENCOLOR: (OperandKind.COLOR,),
    Keyword.SETPENWIDTH: (_NUM,),
    Keyword.SETHEADING: (_NUM,),
    Keyword.SETX: (_NUM,),
    Keyword.SETY: (_NUM,),
    Keyword.SETXY: (_NUM, _NUM),
    Keyword.HIDETURTLE: (),
    Keyword.SHOWTURTLE: (),
    Keyword.ARC: (_NUM, _NUM),
    Keyword.XCOR: (),
    Keyword.YCOR: (),
    Keyword.HEADING: (),
}

_ALIASES: dict[str, Keyword] = {kw.value: kw for kw in Keyword}
_ALIASES.update(
    {
        "FD": Keyword.FORWARD,
        "BK": Keyword.BACKWARD,
        "RT": Keyword.RIGHT,
        "LT": Keyword.LEFT,
        "PU": Keyword.PENUP,
        "PD": Keyword.PENDOWN,
        "CS": Keyword.CLEARSCREEN,
        "SETPC": Keyword.SETPENCOLOR,
        "SETPW": Keyword.SETPENWIDTH,
        "SETH": Keyword.SETHEADING,
        "HT": Keyword.HIDETURTLE,
        "ST": Keyword.SHOWTURTLE,
    }
)

REPEAT = "REPEAT"


@dataclass(frozen=True)
class Command:
    name: Keyword
    operands: tuple[Operand, ...] = ()


@dataclass(frozen=True)
class Repeat:
    count: int
    body: tuple[Node, ...]


Node = Command | Repeat


@dataclass(frozen=True)
class TurtlePose:
    x: float
    y: float
    heading: float


@dataclass(frozen=True)
class PenState:
    down: bool = True
    color: str = DEFAULT_COLOR
    width: float = 1.0
    visible: bool = True


@dataclass(frozen=True)
class LineSegment:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)


# -------------------------
# Tokenizer
# -------------------------

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:E[+-]?\d+)?\Z")
_COUNT_RE = re.compile(r"\d+\Z")


def tokenize(text: str) -> list[str]:
    """Upper-case the text and split it on whitespace.

    Brackets are self-delimiting, so "[FD" yields "[" and "FD".
    """
    text = text.upper().replace("[", " [ ").replace("]", " ] ")
    return text.split()


def parse_number(token: str) -> float | None:
    if not _NUMBER_RE.match(token.upper()):
        return None
    value = float(token)
    # 1E400 and the like overflow to inf
    return value if math.isfinite(value) else None


def _is_operand_token(token: str) -> bool:
    return token not in ("[", "]") and token != REPEAT and token not in _ALIASES


# -------------------------
# Parser
# -------------------------


class _Parser:
    """Turns a token list into Command / Repeat nodes, one statement at a time.

    Bracket depth is tracked with an explicit stack of open REPEAT blocks, so a
    nested block never ends at the first ']' and nesting depth is not bounded
    by the Python recursion limit.
    """

    def __init__(self, tokens: list[str], report: Callable[[LogoError], None]):
        self.tokens = tokens
        self.pos = 0
        self.report = report

    def _peek(self) -> str | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def statements(self) -> Generator[Node, None, None]:
        while self.pos < len(self.tokens):
            node = self._statement()
            if node is not None:
                yield node

    def _statement(self) -> Node | None:
        # Each frame is (count, body collected so far).
        open_blocks: list[tuple[int, list[Node]]] = []

        while True:
            tok = self._peek()
            if tok is None:
                _raise_unless(not open_blocks, "REPEAT block is missing ']'")
                return None
            self.pos += 1

            node: Node | None
            if tok == REPEAT:
                open_blocks.append((self._repeat_header(), []))
                continue
            if tok == "]":
                _raise_unless(bool(open_blocks), "']' without matching '['")
                count, body = open_blocks.pop()
                node = Repeat(count, tuple(body))
                logger.debug("parsed REPEAT %d with %d statement(s)", count, len(body))
            elif tok == "[":
                raise LogoSyntaxError("'[' must follow REPEAT and its count")
            else:
                node = self._command(tok)

            if not open_blocks:
                return node
            if node is not None:
                open_blocks[-1][1].append(node)

    def _repeat_header(self) -> int:
        count_tok = self._peek()
        _raise_unless(
            count_tok is not None and _COUNT_RE.match(count_tok) is not None,
            "REPEAT expects a non-negative integer count, got "
            f"{count_tok if count_tok is not None else 'nothing'}",
        )
        self.pos += 1
        _raise_unless(self._peek() == "[", "REPEAT expects '[' after its count")
        self.pos += 1
        return int(cast(str, count_tok))

    def _command(self, tok: str) -> Command | None:
        keyword = _ALIASES.get(tok)
        if keyword is None:
            self.report(UnknownCommandError(tok))
            # Whatever looks like its inputs goes with it.
            while (nxt := self._peek()) is not None and _is_operand_token(nxt):
                self.pos += 1
            return None
        operands = tuple(
            self._operand(kind, keyword) for kind in _SIGNATURES[keyword]
        )
        return Command(keyword, operands)

    def _operand(self, kind: OperandKind, keyword: Keyword) -> Operand:
        tok = self._peek()
        if tok is None or not _is_operand_token(tok):
            return 0.0 if kind is OperandKind.NUMBER else ""
        self.pos += 1

        if kind is OperandKind.COLOR:
            return tok
        value = parse_number(tok)
        if value is None:
            msg = f"{keyword.value} expects a number, got {tok}; using 0"
            logger.warning(msg)
            self.report(MalformedOperandWarning(msg))
            return 0.0
        return value


def _raise_unless(cond: bool, msg: str) -> None:
    if not cond:
        raise LogoSyntaxError(msg)


def parse_program(text: str) -> tuple[list[Node], list[LogoError]]:
    """Parse a whole line into nodes plus the non-fatal diagnostics.

    Raises LogoSyntaxError on a malformed REPEAT.
    """
    diagnostics: list[LogoError] = []
    parser = _Parser(tokenize(text), diagnostics.append)
    return list(parser.statements()), diagnostics


# -------------------------
# Command stream
# -------------------------


def stream_commands(nodes: Iterable[Node]) -> Generator[Command, None, None]:
    """Yield primitive commands depth-first, repeating REPEAT bodies in place.

    Uses an explicit stack of (body, index, remaining passes) frames.
    """
    stack: list[tuple[tuple[Node, ...], int, int]] = [(tuple(nodes), 0, 1)]

    while stack:
        body, i, remaining = stack.pop()
        if i >= len(body):
            if remaining > 1:
                stack.append((body, 0, remaining - 1))
            continue

        node = body[i]
        # Continuation goes under the nested block so the block runs first.
        stack.append((body, i + 1, remaining))
        if isinstance(node, Repeat):
            if node.count > 0 and node.body:
                stack.append((node.body, 0, node.count))
        else:
            yield node


# -------------------------
# Palettes
# -------------------------


class ColorResolver(Protocol):
    def resolve(self, token: str) -> str | None: ...


NAMED_COLORS: dict[str, str] = {
    "BLACK": "#000000",
    "WHITE": "#ffffff",
    "RED": "#ff0000",
    "GREEN": "#00ff00",
    "BLUE": "#0000ff",
    "YELLOW": "#ffff00",
    "CYAN": "#00ffff",
    "MAGENTA": "#ff00ff",
    "ORANGE": "#ffa500",
    "PURPLE": "#800080",
    "BROWN": "#a52a2a",
    "PINK": "#ffc0cb",
    "GRAY": "#808080",
    "GREY": "#808080",
}

# Standard Logo color numbers 0..15.
INDEXED_COLORS: tuple[str, ...] = (
    "#000000",  # black
    "#0000ff",  # blue
    "#00ff00",  # green
    "#00ffff",  # cyan
    "#ff0000",  # red
    "#ff00ff",  # magenta
    "#ffff00",  # yellow
    "#ffffff",  # white
    "#9b603b",  # brown
    "#c58812",  # tan
    "#64a240",  # forest
    "#78bbbb",  # aqua
    "#ff958c",  # salmon
    "#9071d0",  # purple
    "#ffa300",  # orange
    "#b7b7b7",  # grey
)


@dataclass
class NamedPalette:
    colors: dict[str, str] = field(default_factory=lambda: dict(NAMED_COLORS))

    def resolve(self, token: str) -> str | None:
        return self.colors.get(token.upper())


@dataclass
class IndexedPalette:
    colors: tuple[str, ...] = INDEXED_COLORS

    def resolve(self, token: str) -> str | None:
        if token.isdigit() and int(token) < len(self.colors):
            return self.colors[int(token)]
        return None


_HEX_COLOR_RE = re.compile(r"#(?:[0-9a-f]{3}|[0-9a-f]{6})\Z", re.IGNORECASE)


def resolve_color(
    token: str, resolver: ColorResolver, default: str = DEFAULT_COLOR
) -> str:
    """Resolve a color word ("RED, "RED", 4, #F80) to a concrete value.

    Unresolvable names fall back to `default`.
    """
    name = token.strip('"')
    if not name:
        return default
    value = resolver.resolve(name)
    if value is not None:
        return value
    if _HEX_COLOR_RE.match(name):
        return name.lower()
    logger.warning("unknown color %r, using %s", name, default)
    return default


# -------------------------
# Turtle
# -------------------------


class DrawingSurface(Protocol):
    def draw_line(
        self, x1: float, y1: float, x2: float, y2: float, color: str, width: float
    ) -> None: ...

    def clear(self) -> None: ...


class PathRecorder:
    """Append-only log of drawn segments; only clear() removes entries."""

    def __init__(self) -> None:
        self._segments: list[LineSegment] = []
        self._appended = 0

    def append(self, seg: LineSegment) -> None:
        self._segments.append(seg)
        self._appended += 1

    def clear(self) -> None:
        self._segments = []

    @property
    def segments(self) -> tuple[LineSegment, ...]:
        return tuple(self._segments)

    def mark(self) -> int:
        return self._appended

    def since(self, mark: int) -> tuple[LineSegment, ...]:
        """Segments appended after `mark` that a clear() has not dropped."""
        count = min(self._appended - mark, len(self._segments))
        return tuple(self._segments[len(self._segments) - count :])

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[LineSegment]:
        return iter(tuple(self._segments))


def arc_step_count(angle: float, radius: float) -> int:
    if radius <= 0 or angle == 0:
        return 0
    return math.ceil(abs(angle))


def normalize_heading(degrees: float) -> float:
    h = ((degrees % 360.0) + 360.0) % 360.0
    # tiny negative inputs round up to exactly 360.0
    return 0.0 if h >= 360.0 else h


class Turtle:
    """Pose and pen state; draws a segment for every pen-down motion.

    Coordinates are surface coordinates with y growing DOWNWARD. Heading 0
    points up (-y) and angles grow clockwise, so heading 90 points to +x.
    """

    def __init__(
        self,
        *,
        home: Point = (0.0, 0.0),
        pen: PenState | None = None,
        palette: ColorResolver | None = None,
        default_color: str = DEFAULT_COLOR,
        recorder: PathRecorder | None = None,
        surface: DrawingSurface | None = None,
    ) -> None:
        self.home = home
        self.pose = TurtlePose(home[0], home[1], 0.0)
        self.pen = pen if pen is not None else PenState(color=default_color)
        self.palette: ColorResolver = palette if palette is not None else NamedPalette()
        self.default_color = default_color
        self.recorder = recorder if recorder is not None else PathRecorder()
        self.surface = surface

    # motion

    def forward(self, distance: float) -> None:
        theta = math.radians(90.0 - self.pose.heading)
        nx = self.pose.x + distance * math.cos(theta)
        ny = self.pose.y - distance * math.sin(theta)
        self._move_to(nx, ny)

    def backward(self, distance: float) -> None:
        self.forward(-distance)

    def right(self, degrees: float) -> None:
        h = normalize_heading(self.pose.heading + degrees)
        self.pose = replace(self.pose, heading=h)

    def left(self, degrees: float) -> None:
        h = normalize_heading(self.pose.heading - degrees)
        self.pose = replace(self.pose, heading=h)

    def set_heading(self, degrees: float) -> None:
        self.pose = replace(self.pose, heading=normalize_heading(degrees))

    def set_position(self, x: float | None = None, y: float | None = None) -> None:
        self._move_to(
            self.pose.x if x is None else x,
            self.pose.y if y is None else y,
        )

    def go_home(self) -> None:
        self._move_to(*self.home)
        self.pose = replace(self.pose, heading=0.0)

    def arc(
        self, angle: float, radius: float, max_steps: int | None = None
    ) -> None:
        """Approximate an arc by one forward step and a 1 degree turn per degree.

        The trace is a polygon inscribed in the true arc; the error grows with
        the step length relative to the radius. A fractional angle is split
        into ceil(|angle|) equal turns so the total turn is exact.
        Raises StepLimitError after `max_steps` steps when more are needed.
        """
        steps = arc_step_count(angle, radius)
        if not steps:
            return
        arc_length = abs(angle) * math.pi * radius / 180.0
        step = arc_length / steps
        turn = angle / steps
        allowed = steps if max_steps is None else min(steps, max_steps)
        for _ in range(allowed):
            self.forward(step)
            self.right(turn)
        if allowed < steps:
            raise StepLimitError(f"ARC stopped after {allowed} of {steps} steps")

    # pen

    def pen_up(self) -> None:
        self.pen = replace(self.pen, down=False)

    def pen_down(self) -> None:
        self.pen = replace(self.pen, down=True)

    def set_pen_color(self, token: str) -> None:
        self.pen = replace(
            self.pen, color=resolve_color(token, self.palette, self.default_color)
        )

    def set_pen_width(self, width: float) -> None:
        self.pen = replace(self.pen, width=max(1.0, width))

    def set_visible(self, visible: bool) -> None:
        self.pen = replace(self.pen, visible=visible)

    def clear(self) -> None:
        """Erase the trace and return home without drawing."""
        self.recorder.clear()
        if self.surface is not None:
            self.surface.clear()
        self.pose = TurtlePose(self.home[0], self.home[1], 0.0)

    def _move_to(self, nx: float, ny: float) -> None:
        if self.pen.down:
            seg = LineSegment(
                self.pose.x, self.pose.y, nx, ny, self.pen.color, self.pen.width
            )
            self.recorder.append(seg)
            if self.surface is not None:
                self.surface.draw_line(
                    seg.x1, seg.y1, seg.x2, seg.y2, seg.color, seg.width
                )
        self.pose = replace(self.pose, x=nx, y=ny)


# -------------------------
# Interpreter
# -------------------------


@dataclass(frozen=True)
class InterpretResult:
    segments: tuple[LineSegment, ...]
    pose: TurtlePose
    pen: PenState
    errors: tuple[LogoError, ...] = ()
    warnings: tuple[LogoError, ...] = ()
    outputs: tuple[tuple[Keyword, float], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class Interpreter:
    """Runs Logo text against a persistent Turtle.

    Each call parses one statement at a time and dispatches it before parsing
    the next, so a syntax error only abandons the rest of that text.
    """

    def __init__(self, turtle: Turtle | None = None, *, step_limit: int | None = None):
        self.turtle = turtle if turtle is not None else Turtle()
        self.step_limit = step_limit

    def interpret(self, text: str) -> InterpretResult:
        errors: list[LogoError] = []
        warnings: list[LogoError] = []
        outputs: list[tuple[Keyword, float]] = []

        def report(diag: LogoError) -> None:
            if isinstance(diag, MalformedOperandWarning):
                warnings.append(diag)
            else:
                errors.append(diag)

        mark = self.turtle.recorder.mark()
        dispatched = 0
        try:
            for node in _Parser(tokenize(text), report).statements():
                for cmd in stream_commands((node,)):
                    budget = None
                    if self.step_limit is not None:
                        budget = self.step_limit - dispatched
                        if budget <= 0:
                            raise StepLimitError(
                                f"stopped after {self.step_limit} commands"
                            )
                    value = self.dispatch(cmd, budget=budget)
                    dispatched += _step_cost(cmd)
                    if value is not None:
                        outputs.append((cmd.name, value))
        except (LogoSyntaxError, StepLimitError) as e:
            logger.debug("line abandoned: %s", e)
            errors.append(e)

        return InterpretResult(
            segments=self.turtle.recorder.since(mark),
            pose=self.turtle.pose,
            pen=self.turtle.pen,
            errors=tuple(errors),
            warnings=tuple(warnings),
            outputs=tuple(outputs),
        )

    def reset(self) -> None:
        self.turtle.clear()

    def dispatch(self, cmd: Command, *, budget: int | None = None) -> float | None:
        """Apply one primitive. Queries return their value, the rest None.

        `budget` caps the forward/turn steps an ARC may take.
        """
        t = self.turtle
        name = cmd.name
        ops = cmd.operands
        logger.debug("dispatch %s %s", name.value, " ".join(map(str, ops)))

        if name is Keyword.FORWARD:
            t.forward(_num(ops[0]))
        elif name is Keyword.BACKWARD:
            t.backward(_num(ops[0]))
        elif name is Keyword.RIGHT:
            t.right(_num(ops[0]))
        elif name is Keyword.LEFT:
            t.left(_num(ops[0]))
        elif name is Keyword.PENUP:
            t.pen_up()
        elif name is Keyword.PENDOWN:
            t.pen_down()
        elif name is Keyword.HOME:
            t.go_home()
        elif name is Keyword.CLEARSCREEN:
            self.reset()
        elif name is Keyword.SETPENCOLOR:
            t.set_pen_color(str(ops[0]))
        elif name is Keyword.SETPENWIDTH:
            t.set_pen_width(_num(ops[0]))
        elif name is Keyword.SETHEADING:
            t.set_heading(_num(ops[0]))
        elif name is Keyword.SETX:
            t.set_position(x=_num(ops[0]))
        elif name is Keyword.SETY:
            t.set_position(y=_num(ops[0]))
        elif name is Keyword.SETXY:
            t.set_position(_num(ops[0]), _num(ops[1]))
        elif name is Keyword.HIDETURTLE:
            t.set_visible(False)
        elif name is Keyword.SHOWTURTLE:
            t.set_visible(True)
        elif name is Keyword.ARC:
            t.arc(_num(ops[0]), _num(ops[1]), max_steps=budget)
        elif name is Keyword.XCOR:
            return t.pose.x
        elif name is Keyword.YCOR:
            return t.pose.y
        elif name is Keyword.HEADING:
            return t.pose.heading
        else:
            raise AssertionError(f"unhandled keyword {name}")
        return None


def _step_cost(cmd: Command) -> int:
    # an ARC counts each of its steps against the step limit
    if cmd.name is Keyword.ARC:
        return max(1, arc_step_count(_num(cmd.operands[0]), _num(cmd.operands[1])))
    return 1


def _num(x: Operand) -> float:
    if isinstance(x, str):
        raise TypeError(f"Expected a number operand, got {x!r}")
    return float(x)


# -------------------------
# SVG writing
# -------------------------


@dataclass(frozen=True)
class SvgStyle:
    fill: str = "none"
    stroke_linecap: str = "round"
    stroke_linejoin: str = "round"


@dataclass
class StyledPolyline:
    points: list[Point]
    color: str
    width: float


def segments_to_polylines(segments: Iterable[LineSegment]) -> list[StyledPolyline]:
    """Merge consecutive connected segments that share color and width."""
    out: list[StyledPolyline] = []
    for seg in segments:
        start, end = (seg.x1, seg.y1), (seg.x2, seg.y2)
        cur = out[-1] if out else None
        if (
            cur is not None
            and cur.color == seg.color
            and cur.width == seg.width
            and cur.points[-1] == start
        ):
            if end != start:
                cur.points.append(end)
        else:
            out.append(StyledPolyline([start, end], seg.color, seg.width))
    return out


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def compute_bounds(
    polylines: list[StyledPolyline],
) -> tuple[float, float, float, float]:
    _require(len(polylines) > 0, "No drawable geometry produced.")
    xs = [x for pl in polylines for x, _ in pl.points]
    ys = [y for pl in polylines for _, y in pl.points]
    return (min(xs), min(ys), max(xs), max(ys))


def _fmt(x: float, precision: int) -> str:
    # Normalise -0.0 so it never produces "-0" in SVG output.
    if not x:
        x = 0.0
    s = f"{x:.{precision}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s in ("-0", ""):
        s = "0"
    return s


def _escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def render_svg(
    segments: Iterable[LineSegment],
    *,
    margin: float = 10,
    precision: int = 3,
    width: float | None = None,
    height: float | None = None,
    style: SvgStyle | None = None,
    background: str | None = None,
    title: str | None = None,
) -> str:
    """Render segments as an SVG document, one <polyline> per styled run.

    Turtle coordinates already grow downward, so no flip is applied.
    """
    style = style or SvgStyle()
    polylines = segments_to_polylines(segments)
    minx, miny, maxx, maxy = compute_bounds(polylines)

    # Margin first, so that collinear drawings (zero height or width) are
    # still renderable.
    minx -= margin
    miny -= margin
    maxx += margin
    maxy += margin
    w = maxx - minx
    h = maxy - miny
    _require(
        w > 0 and h > 0,
        "Degenerate bounds after margin (width or height is zero). "
        "Set svg.margin > 0 to render straight lines or single points.",
    )

    svg_w_attr = f' width="{_fmt(float(width), precision)}"' if width else ""
    svg_h_attr = f' height="{_fmt(float(height), precision)}"' if height else ""
    view_box = (
        f"{_fmt(minx, precision)} {_fmt(miny, precision)} {_fmt(w, precision)} "
        f"{_fmt(h, precision)}"
    )

    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        "<svg xmlns=\"http://www.w3.org/2000/svg\" version=\"1.1\" "
        f"viewBox=\"{view_box}\"{svg_w_attr}{svg_h_attr}>"
    )
    if title:
        lines.append(f"  <title>{_escape(title)}</title>")
    if background and background.lower() != "none":
        lines.append(
            f'  <rect x="{_fmt(minx, precision)}" y="{_fmt(miny, precision)}" '
            f'width="{_fmt(w, precision)}" height="{_fmt(h, precision)}" '
            f'fill="{_escape(background)}" />'
        )

    shared = (
        f'fill="{style.fill}" stroke-linecap="{style.stroke_linecap}" '
        f'stroke-linejoin="{style.stroke_linejoin}"'
    )
    for pl in polylines:
        pts = " ".join(
            f"{_fmt(x, precision)},{_fmt(y, precision)}" for x, y in pl.points
        )
        lines.append(
            f'  <polyline points="{pts}" stroke="{_escape(pl.color)}" '
            f'stroke-width="{_fmt(pl.width, precision)}" {shared} />'
        )

    lines.append("</svg>")
    return "\n".join(lines) + "\n"


def write_svg(segments: Iterable[LineSegment], *, out_path: str, **kwargs: Any) -> None:
    content = render_svg(segments, **kwargs)
    _ensure_parent_dir(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(content)
    logger.info("wrote %s", out_path)


# -------------------------
# Config parsing
# -------------------------


@dataclass(frozen=True)
class RenderConfig:
    name: str
    home: Point
    pen_color: str
    pen_width: float
    palette: ColorResolver
    step_limit: int | None

    # svg
    margin: float
    precision: int
    width: float | None
    height: float | None
    style: SvgStyle
    background: str | None

    def svg_options(self) -> dict[str, Any]:
        return {
            "margin": self.margin,
            "precision": self.precision,
            "width": self.width,
            "height": self.height,
            "style": self.style,
            "background": self.background,
            "title": self.name,
        }


def _parse_palette(x: Any) -> ColorResolver:
    if x == "named":
        return NamedPalette()
    if x == "indexed":
        return IndexedPalette()
    if isinstance(x, str):
        raise ConfigError(f"palette must be 'named', 'indexed' or an object; got {x!r}")
    colors = _as_dict(x, "palette")
    return NamedPalette(
        {
            _as_str(k, "palette key").upper(): _as_str(v, f"palette['{k}']")
            for k, v in colors.items()
        }
    )


def parse_config(obj: dict[str, Any]) -> RenderConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "Logo drawing"), "name")

    turtle = _as_dict(obj.get("turtle", {}), "turtle")
    home_obj = _as_dict(turtle.get("home", {}), "turtle.home")
    home = (
        _as_float(home_obj.get("x", 0), "turtle.home.x"),
        _as_float(home_obj.get("y", 0), "turtle.home.y"),
    )
    pen_color = _as_str(turtle.get("pen_color", DEFAULT_COLOR), "turtle.pen_color")
    pen_width = _as_float(turtle.get("pen_width", 1), "turtle.pen_width")
    _require(pen_width >= 1, "turtle.pen_width must be >= 1")

    palette = _parse_palette(obj.get("palette", "named"))

    step_limit = obj.get("step_limit")
    if step_limit is not None:
        step_limit = _as_int(step_limit, "step_limit")
        _require(step_limit > 0, "step_limit must be > 0")

    svg = _as_dict(obj.get("svg", {}), "svg")
    margin = _as_float(svg.get("margin", 10), "svg.margin")
    _require(margin >= 0, "svg.margin must be >= 0")
    precision = _as_int(svg.get("precision", 3), "svg.precision")
    _require(0 <= precision <= 10, "svg.precision must be between 0 and 10")

    width = svg.get("width")
    height = svg.get("height")
    if width is not None:
        width = _as_float(width, "svg.width")
        _require(width > 0, "svg.width must be > 0")
    if height is not None:
        height = _as_float(height, "svg.height")
        _require(height > 0, "svg.height must be > 0")

    style = SvgStyle(
        stroke_linecap=_as_str(svg.get("linecap", "round"), "svg.linecap"),
        stroke_linejoin=_as_str(svg.get("linejoin", "round"), "svg.linejoin"),
    )

    background = svg.get("background")
    if background is not None:
        background = _as_str(background, "svg.background")

    return RenderConfig(
        name=name,
        home=home,
        pen_color=pen_color,
        pen_width=pen_width,
        palette=palette,
        step_limit=step_limit,
        margin=margin,
        precision=precision,
        width=width,
        height=height,
        style=style,
        background=background,
    )


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def load_config(path: str | None) -> RenderConfig:
    return parse_config(load_json(path) if path else {})


def build_interpreter(
    cfg: RenderConfig, surface: DrawingSurface | None = None
) -> Interpreter:
    pen_color = resolve_color(cfg.pen_color, cfg.palette)
    turtle = Turtle(
        home=cfg.home,
        pen=PenState(color=pen_color, width=cfg.pen_width),
        palette=cfg.palette,
        default_color=pen_color,
        surface=surface,
    )
    return Interpreter(turtle, step_limit=cfg.step_limit)


# -------------------------
# Programs / session history
# -------------------------


def iter_program_lines(text: str) -> Iterator[str]:
    """Yield the non-blank lines of a program with ';' comments removed."""
    for raw in text.splitlines():
        line = raw.split(";", 1)[0].strip()
        if line:
            yield line


def read_program(path: str) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return list(iter_program_lines(f.read()))


_QUERY_LABELS = {
    Keyword.XCOR: "X coordinate: {}",
    Keyword.YCOR: "Y coordinate: {}",
    Keyword.HEADING: "Heading: {}°",
}


def format_output(keyword: Keyword, value: float) -> str:
    return _QUERY_LABELS[keyword].format(_fmt(value, 3))


@dataclass
class Session:
    """Inputs and their outputs, for the history export."""

    history: list[str] = field(default_factory=list)
    log: list[tuple[str, str]] = field(default_factory=list)

    def record(self, line: str, result: InterpretResult) -> list[tuple[str, str]]:
        entries = [("INPUT", f"? {line}")]
        entries += [("OUTPUT", format_output(k, v)) for k, v in result.outputs]
        entries += [("WARNING", f"Warning: {w}") for w in result.warnings]
        entries += [("ERROR", f"Error: {e}") for e in result.errors]
        self.history.append(line)
        self.log.extend(entries)
        return entries[1:]

    @property
    def error_count(self) -> int:
        return sum(1 for kind, _ in self.log if kind == "ERROR")


def run_lines(
    interp: Interpreter, lines: Iterable[str], session: Session | None = None
) -> Session:
    session = session if session is not None else Session()
    for line in lines:
        session.record(line, interp.interpret(line))
    return session


_RULE = "=" * 40


def format_session_history(
    session: Session, turtle: Turtle, generated: datetime | None = None
) -> str:
    generated = generated or datetime.now()
    pose, pen = turtle.pose, turtle.pen
    out = [
        "LOGO Programming Session History",
        f"Generated: {generated:%Y-%m-%d %H:%M:%S}",
        _RULE,
        "",
        "SESSION INFORMATION:",
        f"- Turtle Position: ({round(pose.x)}, {round(pose.y)})",
        f"- Turtle Heading: {round(pose.heading)}°",
        f"- Pen Status: {'DOWN' if pen.down else 'UP'}",
        f"- Pen Color: {pen.color}",
        f"- Pen Width: {_fmt(pen.width, 3)}px",
        "",
        "STATISTICS:",
        f"- Total Commands Executed: {len(session.history)}",
        f"- Errors Encountered: {session.error_count}",
        "",
        "COMMAND HISTORY:",
        _RULE,
    ]
    out += [f"{i}. {line}" for i, line in enumerate(session.history, start=1)]
    out += ["", "SESSION OUTPUT LOG:", _RULE]
    out += [f"[{kind}] {text}" for kind, text in session.log]
    out += ["", _RULE, "End of LOGO Programming Session History"]
    return "\n".join(out) + "\n"


def write_text(text: str, path: str) -> None:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info("wrote %s", path)


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
LANGUAGE

Commands are case-insensitive and separated by whitespace. Several commands
may share a line. Numbers that are missing or not numbers count as 0.

  FORWARD n   (FD)      move forward n steps
  BACKWARD n  (BK)      move backward n steps
  RIGHT a     (RT)      turn clockwise a degrees
  LEFT a      (LT)      turn counter-clockwise a degrees
  PENUP       (PU)      move without drawing
  PENDOWN     (PD)      draw while moving
  HOME                  go back to the home point, heading 0 (draws if pen down)
  CLEARSCREEN (CS)      erase the drawing and go home without drawing
  SETPENCOLOR c (SETPC) "RED, "BLUE, ... a palette index, or #RRGGBB
  SETPENWIDTH w (SETPW) pen width, at least 1
  SETHEADING a  (SETH)  absolute heading
  SETX x / SETY y / SETXY x y
                        jump to coordinates (draws if pen down)
  HIDETURTLE (HT) / SHOWTURTLE (ST)
  ARC angle radius      arc to the right (negative angle: to the left)
  XCOR / YCOR / HEADING print the current value

  REPEAT n [ ... ]      run the bracketed commands n times; blocks may nest

Coordinates grow to the right (x) and DOWN (y). Heading 0 points up and
angles grow clockwise.

PROGRAM FILES

One line per input; ';' starts a comment. A bad REPEAT abandons the rest of
its line only.

  ; flower
  REPEAT 8 [REPEAT 10 [FD 5 RT 9] RT 45]

CONFIG JSON (optional, --config)

  {
    "name": "My drawing",
    "turtle": {"home": {"x": 0, "y": 0}, "pen_color": "BLACK", "pen_width": 1},
    "palette": "named" | "indexed" | {"SKY": "#87ceeb", ...},
    "step_limit": 1000000,
    "svg": {"margin": 10, "precision": 3, "width": 800, "height": 600,
            "background": "white", "linecap": "round", "linejoin": "round"}
  }
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="logo_turtle.py",
        description="Logo turtle interpreter that outputs SVG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More logging (-v info, -vv debug).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("render", help="Run a Logo program and write an SVG file.")
    pr.add_argument("program", help="Path to the Logo program.")
    pr.add_argument("output", help="Path to write the SVG output.")
    pr.add_argument("--config", default=None, help="Optional JSON config.")

    pc = sub.add_parser(
        "check", help="Run a Logo program and print a summary and diagnostics."
    )
    pc.add_argument("program", help="Path to the Logo program.")
    pc.add_argument("--config", default=None, help="Optional JSON config.")

    pi = sub.add_parser("repl", help="Read commands from standard input.")
    pi.add_argument("--config", default=None, help="Optional JSON config.")
    pi.add_argument("--svg", default=None, help="Write the drawing here on exit.")
    pi.add_argument(
        "--history", default=None, help="Write the session history here on exit."
    )

    return p


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


# -------------------------
# Commands
# -------------------------


def _print_diagnostics(session: Session, out: TextIO) -> None:
    for kind, text in session.log:
        if kind in ("ERROR", "WARNING"):
            print(text, file=out)


def cmd_render(program_path: str, output_path: str, config_path: str | None) -> int:
    cfg = load_config(config_path)
    interp = build_interpreter(cfg)
    session = run_lines(interp, read_program(program_path))
    _print_diagnostics(session, sys.stderr)
    if not len(interp.turtle.recorder):
        print(f"Nothing drawn; {output_path} not written", file=sys.stderr)
        return 2
    write_svg(
        interp.turtle.recorder.segments, out_path=output_path, **cfg.svg_options()
    )
    return 0


def cmd_check(program_path: str, config_path: str | None) -> int:
    cfg = load_config(config_path)
    interp = build_interpreter(cfg)
    session = run_lines(interp, read_program(program_path))
    pose, pen = interp.turtle.pose, interp.turtle.pen

    print(f"lines: {len(session.history)}")
    print(f"segments: {len(interp.turtle.recorder)}")
    print(
        f"pose: x={_fmt(pose.x, 3)} y={_fmt(pose.y, 3)} "
        f"heading={_fmt(pose.heading, 3)}"
    )
    print(
        f"pen: {'down' if pen.down else 'up'} color={pen.color} "
        f"width={_fmt(pen.width, 3)} visible={pen.visible}"
    )
    _print_diagnostics(session, sys.stdout)
    return 2 if session.error_count else 0


def cmd_repl(
    config_path: str | None,
    svg_path: str | None,
    history_path: str | None,
    stdin: TextIO,
    stdout: TextIO,
) -> int:
    cfg = load_config(config_path)
    interp = build_interpreter(cfg)
    session = Session()

    while True:
        stdout.write("? ")
        stdout.flush()
        raw = stdin.readline()
        if not raw:
            break
        line = raw.strip()
        if not line:
            continue
        for _, text in session.record(line, interp.interpret(line)):
            print(text, file=stdout)
    stdout.write("\n")

    if svg_path:
        if len(interp.turtle.recorder):
            write_svg(
                interp.turtle.recorder.segments, out_path=svg_path, **cfg.svg_options()
            )
        else:
            logger.warning("nothing was drawn; %s not written", svg_path)
    if history_path:
        write_text(format_session_history(session, interp.turtle), history_path)
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.cmd == "render":
            return cmd_render(args.program, args.output, args.config)
        elif args.cmd == "check":
            return cmd_check(args.program, args.config)
        elif args.cmd == "repl":
            return cmd_repl(args.config, args.svg, args.history, sys.stdin, sys.stdout)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
