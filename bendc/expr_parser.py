"""Parser for expressions of the imperative surface language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, NoReturn, Optional, Tuple, TypeVar

from bendc.syntax import (
    Bin,
    Call,
    Chn,
    Comprehension,
    Constructor,
    Eraser,
    Expr,
    Lam,
    Lst,
    MapGet,
    MapInit,
    Num,
    Number,
    Op,
    Str,
    Sup,
    Tup,
    Var,
)

T = TypeVar("T")

INDENT_STEP = 2

_NAME_EXTRA = "_.-/"
_HEX_CHARS = "0123456789abcdefABCDEF"

# Longer operators come before their prefixes.
_OPERATORS: Tuple[Tuple[str, Op], ...] = (
    ("+", Op.ADD),
    ("-", Op.SUB),
    ("**", Op.POW),
    ("*", Op.MUL),
    ("/", Op.DIV),
    ("%", Op.REM),
    ("<<", Op.SHL),
    (">>", Op.SHR),
    ("<", Op.LT),
    (">", Op.GT),
    ("&", Op.AND),
    ("|", Op.OR),
    ("^", Op.XOR),
    ("==", Op.EQ),
    ("!=", Op.NEQ),
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _is_name_char(c: str) -> bool:
    return (c.isascii() and c.isalnum()) or c in _NAME_EXTRA


def _is_num_char(c: str) -> bool:
    return c in "0123456789+-"


class ParseError(Exception):
    """A syntax error, with the span of input it refers to."""

    def __init__(self, message: str, start: int = 0, end: int = 0,
                 line: int = 1, column: int = 1, context: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end
        self.line = line
        self.column = column
        self.context = context

    def __str__(self) -> str:
        text = f"{self.message}\nAt line {self.line}, column {self.column}:"
        if self.context:
            text += "\n" + self.context
        return text


@dataclass
class Indent:
    """Indentation of a line in spaces; a value of None means end of input."""

    value: Optional[int] = 0

    def enter_level(self) -> None:
        if self.value is not None:
            self.value += INDENT_STEP

    def exit_level(self) -> None:
        if self.value is not None:
            self.value -= INDENT_STEP


class ExprParser:
    """Recursive-descent parser over a source string, starting at `index`."""

    def __init__(self, input: str) -> None:
        self.input = input
        self.index = 0

    # Low-level cursor handling

    def _peek(self) -> Optional[str]:
        return self.input[self.index] if self.index < len(self.input) else None

    def _advance(self) -> Optional[str]:
        c = self._peek()
        if c is not None:
            self.index += 1
        return c

    def _starts_with(self, text: str) -> bool:
        return self.input.startswith(text, self.index)

    def _is_eof(self) -> bool:
        return self.index >= len(self.input)

    def _take_while(self, pred: Callable[[str], bool]) -> str:
        start = self.index
        while (c := self._peek()) is not None and pred(c):
            self.index += 1
        return self.input[start:self.index]

    # Errors

    def _with_ctx(self, msg: str, ini_idx: int, end_idx: int) -> NoReturn:
        ini = min(ini_idx, len(self.input))
        line = self.input.count("\n", 0, ini) + 1
        line_start = self.input.rfind("\n", 0, ini) + 1
        line_end = self.input.find("\n", ini)
        if line_end == -1:
            line_end = len(self.input)
        column = ini - line_start + 1
        width = max(1, min(end_idx, line_end) - ini)
        context = self.input[line_start:line_end] + "\n" + " " * (column - 1) + "^" * width
        raise ParseError(msg, ini_idx, end_idx, line, column, context)

    def _expected_spanned(self, exp: str, ini_idx: int, end_idx: int) -> NoReturn:
        detected = " end of input" if self._is_eof() else ""
        self._with_ctx(f"- expected: {exp}\n- detected:{detected}", ini_idx, end_idx)

    def _expected(self, exp: str) -> NoReturn:
        self._expected_spanned(exp, self.index, self.index + 1)

    def _labelled(self, parser: Callable[[], T], label: str) -> T:
        try:
            return parser()
        except ParseError:
            self._expected(label)

    # Trivia and tokens

    def skip_trivia(self) -> None:
        """Skip whitespace, newlines included, and '#' comments."""
        while (c := self._peek()) is not None:
            if c.isascii() and c.isspace():
                self._advance()
                continue
            if c == "#":
                while (c := self._peek()) is not None and c != "\n":
                    self._advance()
                self._advance()
                continue
            break

    def skip_trivia_inline(self) -> None:
        """Skip spaces, tabs and comments without crossing a line break."""
        while (c := self._peek()) is not None:
            if c in " \t":
                self._advance()
                continue
            if c == "#":
                while (c := self._peek()) is not None and c != "\n":
                    self._advance()
                continue
            break

    def consume(self, text: str) -> None:
        """Skip trivia, then consume `text` or raise ParseError."""
        self.skip_trivia()
        if self._starts_with(text):
            self.index += len(text)
        else:
            self._expected(f"'{text}'")

    def try_consume(self, text: str) -> bool:
        """Skip trivia, then consume `text` if it is next."""
        self.skip_trivia()
        if self._starts_with(text):
            self.index += len(text)
            return True
        return False

    def _consume_exactly(self, text: str) -> None:
        if self._starts_with(text):
            self.index += len(text)
        else:
            self._expected(f"'{text}'")

    def _try_consume_exactly(self, text: str) -> bool:
        if self._starts_with(text):
            self.index += len(text)
            return True
        return False

    def _try_parse_keyword(self, keyword: str) -> bool:
        if not self._starts_with(keyword):
            return False
        nxt = self.index + len(keyword)
        if nxt < len(self.input) and _is_name_char(self.input[nxt]):
            return False
        self.index = nxt
        return True

    def _parse_keyword(self, keyword: str) -> None:
        if not self._try_parse_keyword(keyword):
            self._expected(keyword)

    def _parse_restricted_name(self, kind: str) -> str:
        ini_idx = self.index
        name = self._take_while(_is_name_char)
        if not name:
            self._expected(f"{kind} name")
        if "__" in name:
            self._with_ctx(f'{kind} names are not allowed to contain "__".', ini_idx, self.index)
        return name

    def parse_name(self) -> str:
        """Parse a variable name at the current position."""
        return self._parse_restricted_name("Variable")

    def _parse_top_level_name(self) -> str:
        return self._parse_restricted_name("Top-level")

    def _parse_u32(self) -> int:
        digits = self._take_while(lambda c: c.isascii() and c.isdigit())
        if not digits:
            self._expected("integer")
        return int(digits)

    def _list_like(self, parser: Callable[[], T], start: str, end: str, sep: str,
                   hard_sep: bool, min_els: int) -> List[T]:
        self._consume_exactly(start)
        els: List[T] = []
        for i in range(min_els):
            self.skip_trivia()
            els.append(parser())
            self.skip_trivia()
            if hard_sep and not (i == min_els - 1 and self._starts_with(end)):
                self.consume(sep)
            else:
                self.try_consume(sep)
        while not self.try_consume(end):
            els.append(parser())
            self.skip_trivia()
            if hard_sep and not self._starts_with(end):
                self.consume(sep)
            else:
                self.try_consume(sep)
        return els

    # Indentation

    def _advance_inline_trivia(self) -> int:
        spaces = 0
        while (c := self._peek()) is not None:
            if c == " ":
                spaces += 1
                self._advance()
            elif c == "\t":
                self._advance()
            elif c == "#":
                while (c := self._peek()) is not None and c != "\n":
                    self._advance()
            else:
                break
        return spaces

    def _advance_newlines(self) -> Indent:
        while True:
            spaces = self._advance_inline_trivia()
            if self._peek() == "\r":
                self._advance()
            if self._peek() == "\n":
                self._advance()
                continue
            if self._is_eof():
                return Indent(None)
            return Indent(spaces)

    def _consume_new_line(self) -> None:
        self.skip_trivia_inline()
        self._try_consume_exactly("\r")
        self._labelled(lambda: self._consume_exactly("\n"), "line break")

    def _consume_indent_exactly(self, expected: Indent) -> None:
        got = self._advance_newlines()
        if got != expected:
            self._expected_indent(expected, got)

    def _consume_indent_at_most(self, expected: Indent) -> Indent:
        got = self._advance_newlines()
        if got.value is None:
            return got
        if expected.value is not None and got.value <= expected.value:
            return got
        self._expected_indent(expected, got)

    def _expected_indent(self, expected: Indent, got: Indent) -> NoReturn:
        if expected == got:
            raise ValueError("indentation is as expected")
        if expected.value is None:
            msg = f"Indentation error. Expected end-of-input, got {got.value} spaces."
        elif got.value is None:
            msg = f"Indentation error. Expected {expected.value} spaces, got end-of-input."
        else:
            msg = f"Indentation error. Expected {expected.value} spaces, got {got.value}."
        self._with_ctx(msg, self.index, self.index + 1)

    # Literals

    def _parse_number(self) -> Num:
        ini_idx = self.index
        sign: Optional[int] = None
        if self._try_consume_exactly("+"):
            sign = 1
        elif self._try_consume_exactly("-"):
            sign = -1
        if self._try_consume_exactly("0x"):
            radix = 16
        elif self._try_consume_exactly("0b"):
            radix = 2
        else:
            radix = 10
        digits = _HEX_CHARS[: radix if radix <= 10 else 22]

        def take_digits() -> str:
            return self._take_while(lambda c: c in digits or c == "_").replace("_", "")

        num_str = take_digits()
        nxt = self._peek()
        if not num_str or (nxt is not None and nxt in _HEX_CHARS):
            self._expected(f"valid {radix} digit")
        whole = int(num_str, radix)
        if self._try_consume_exactly("."):
            frac_str = take_digits()
            value = float(whole)
            if frac_str:
                value += int(frac_str, radix) / radix ** len(frac_str)
            return Num((sign or 1) * value, "f24")
        if sign is not None:
            value = sign * whole
            if not -(1 << 23) <= value < (1 << 23):
                self._with_ctx("Number literal outside of range for I24.", ini_idx, self.index)
            return Num(value, "i24")
        if whole >= 1 << 24:
            self._with_ctx("Number literal outside of range for U24.", ini_idx, self.index)
        return Num(whole, "u24")

    def _parse_escape(self) -> str:
        self._consume_exactly("\\")
        c = self._peek()
        if c is None:
            self._expected("escape sequence")
        if c in _ESCAPES:
            self._advance()
            return _ESCAPES[c]
        if c == "u":
            self._advance()
            self._consume_exactly("{")
            hex_digits = self._take_while(lambda ch: ch in _HEX_CHARS)
            self._consume_exactly("}")
            if not hex_digits:
                self._expected("unicode code point")
            return chr(int(hex_digits, 16))
        self._expected("escape sequence")

    def _parse_quoted_string(self) -> str:
        self._consume_exactly('"')
        out: List[str] = []
        while True:
            c = self._peek()
            if c is None:
                self._expected("'\"'")
            if c == '"':
                self._advance()
                return "".join(out)
            if c == "\\":
                out.append(self._parse_escape())
            else:
                out.append(c)
                self._advance()

    def _parse_quoted_char(self) -> str:
        self._consume_exactly("'")
        c = self._peek()
        if c is None or c == "'":
            self._expected("character")
        if c == "\\":
            chr_ = self._parse_escape()
        else:
            chr_ = c
            self._advance()
        self._consume_exactly("'")
        return chr_

    def _parse_quoted_symbol(self) -> int:
        self._consume_exactly("`")
        result = 0
        for _ in range(4):
            if self._starts_with("`"):
                break
            c = self._advance()
            if c is None:
                self._expected("'`'")
            if "A" <= c <= "Z":
                nxt = ord(c) - ord("A")
            elif "a" <= c <= "z":
                nxt = ord(c) - ord("a") + 26
            elif "0" <= c <= "9":
                nxt = ord(c) - ord("0") + 52
            elif c == "+":
                nxt = 62
            elif c == "/":
                nxt = 63
            else:
                self.index -= 1
                self._expected("base_64 character")
            result = (result << 6) | nxt
        self._consume_exactly("`")
        return result

    # Expressions

    def _skip(self, inline: bool) -> None:
        if inline:
            self.skip_trivia_inline()
        else:
            self.skip_trivia()

    def _parse_simple_expr(self, inline: bool) -> Expr:
        self._skip(inline)
        head = self._peek()
        if head is None:
            self._expected("expression")
        ini_idx = self.index

        if head == "(":
            self._advance()
            first = self.parse_expr(False)
            self.skip_trivia()
            if self._starts_with(","):
                els = [first]
                while self.try_consume(","):
                    els.append(self.parse_expr(False))
                self.consume(")")
                base: Expr = Tup(els)
            else:
                self.consume(")")
                base = first
        elif head == "{":
            self._advance()
            if self.try_consume("}"):
                return MapInit([])
            first = self.parse_expr(False)
            self.skip_trivia()
            if self.try_consume(","):
                base = self._parse_sup(first)
            elif self.try_consume(":"):
                base = self._parse_map_init(first)
            else:
                self._expected("',' or ':'")
        elif head == "[":
            base = self._parse_list_or_comprehension()
        elif head == "`":
            base = Number(Num(self._parse_quoted_symbol()))
        elif head == '"':
            base = Str(self._parse_quoted_string())
        elif head == "'":
            base = Number(Num(ord(self._parse_quoted_char()) & 0x00FF_FFFF))
        elif head == "$":
            self._advance()
            base = Chn(self.parse_name())
        elif head == "*":
            self._advance()
            base = Eraser()
        elif _is_num_char(head):
            base = Number(self._parse_number())
        else:
            base = Var(self._labelled(self.parse_name, "expression"))

        end_idx = self.index
        self._skip(inline)

        if self._starts_with("("):
            self._advance()
            args: list = []
            kwargs: list = []
            must_be_named = False
            while not self.try_consume(")"):
                arg_ini = self.index
                bnd, arg = self._parse_named_arg()
                arg_end = self.index
                if bnd is not None:
                    must_be_named = True
                    kwargs.append((bnd, arg))
                elif must_be_named:
                    self._with_ctx(
                        "Positional arguments are not allowed to go after named arguments.",
                        arg_ini,
                        arg_end,
                    )
                else:
                    args.append(arg)
                if not self._starts_with(")"):
                    self.consume(",")
            if not args and not kwargs:
                return base
            return Call(base, args, kwargs)

        if self._starts_with("["):
            self._advance()
            if not isinstance(base, Var):
                self._expected_spanned("Map variable name", ini_idx, end_idx)
            key = self.parse_expr(False)
            self.consume("]")
            return MapGet(base.nam, key)

        if self._starts_with("{"):
            if not isinstance(base, Var):
                self._expected_spanned("Constructor name", ini_idx, end_idx)
            kwargs = self._list_like(self._data_kwarg, "{", "}", ",", True, 0)
            return Constructor(base.nam, [], kwargs)

        return base

    def _parse_map_init(self, head: Expr) -> Expr:
        entries = [(head, self.parse_expr(False))]
        self.skip_trivia()
        if not self._starts_with("}"):
            self.consume(",")
        entries.extend(self._list_like(self._parse_map_entry, "", "}", ",", True, 0))
        return MapInit(entries)

    def _parse_sup(self, head: Expr) -> Expr:
        tail = self._list_like(lambda: self.parse_expr(False), "", "}", ",", True, 1)
        return Sup([head, *tail])

    def _data_kwarg(self) -> Tuple[str, Expr]:
        self.skip_trivia()
        nam = self.parse_name()
        self.consume(":")
        return nam, self.parse_expr(False)

    def _parse_map_entry(self) -> Tuple[Expr, Expr]:
        key = self.parse_expr(False)
        self.consume(":")
        return key, self.parse_expr(False)

    def _parse_list_or_comprehension(self) -> Expr:
        self._consume_exactly("[")
        self.skip_trivia()
        if self._try_consume_exactly("]"):
            return Lst([])
        head = self.parse_expr(False)
        self.skip_trivia()
        if self._try_parse_keyword("for"):
            self.skip_trivia()
            bind = self.parse_name()
            self.skip_trivia()
            self._parse_keyword("in")
            iter_ = self.parse_expr(False)
            cond = None
            self.skip_trivia()
            if self._try_parse_keyword("if"):
                cond = self.parse_expr(False)
            self.consume("]")
            return Comprehension(head, bind, iter_, cond)
        self.skip_trivia()
        if not self._starts_with("]"):
            self.consume(",")
        tail = self._list_like(lambda: self.parse_expr(False), "", "]", ",", True, 0)
        return Lst([head, *tail])

    def _parse_lam_var(self) -> Tuple[str, bool]:
        if self._starts_with("$"):
            self._advance()
            return self.parse_name(), True
        return self.parse_name(), False

    def parse_expr(self, inline: bool = False) -> Expr:
        """Parse a lambda or an infix expression.

        With `inline`, trivia between tokens may not cross a line break.
        """
        self._skip(inline)
        is_keyword = self._try_parse_keyword("lambda")
        is_symbol = self._try_consume_exactly("λ")
        if is_keyword or is_symbol:
            names = self._list_like(self._parse_lam_var, "", ":", ",", False, 1)
            return Lam(names, self.parse_expr(inline))
        return self._parse_infix_expr(0, inline)

    def _parse_named_arg(self) -> Tuple[Optional[str], Expr]:
        arg = self.parse_expr(False)
        if self.try_consume("="):
            if isinstance(arg, Var):
                return arg.nam, self.parse_expr(False)
            self._with_ctx("Unexpected '=' in unnamed argument.", self.index, self.index + 1)
        return None, arg

    def _peek_oper(self) -> Optional[Tuple[Op, str]]:
        for text, op in _OPERATORS:
            if self._starts_with(text):
                return op, text
        return None

    def _parse_infix_expr(self, prec: int, inline: bool) -> Expr:
        self._skip(inline)
        if prec > Op.max_precedence():
            return self._parse_simple_expr(inline)
        lhs = self._parse_infix_expr(prec + 1, inline)
        self._skip(inline)
        while (found := self._peek_oper()) is not None:
            op, text = found
            if op.precedence() != prec:
                break
            self.index += len(text)
            rhs = self._parse_infix_expr(prec + 1, inline)
            lhs = Bin(op, lhs, rhs)
            self.skip_trivia_inline()
        return lhs