"""Parser for statements and top-level items of the imperative surface language."""

from __future__ import annotations

from typing import List, Optional, Tuple

from bendc.expr_parser import ExprParser, Indent
from bendc.gen_map_get import gen_map_get
from bendc.lowering import Adt, Book, definition_to_fun
from bendc.order_kwargs import order_kwargs
from bendc.syntax import (
    AssignPattern,
    Ask,
    Assign,
    Bend,
    ChnPat,
    CtrField,
    Definition,
    Do,
    EraserPat,
    Expr,
    Fold,
    If,
    InPlace,
    InPlaceOp,
    MapSetPat,
    Match,
    MatchArm,
    Open,
    Return,
    Stmt,
    SupPat,
    Switch,
    TupPat,
    TypeDef,
    Use,
    Var,
    VarPat,
    Variant,
)

_IN_PLACE_OPS = tuple((op.value, op) for op in InPlaceOp)

_Parsed = Tuple[Stmt, Indent]


class PyParser(ExprParser):
    """Parser for indentation-based definitions, types and objects."""

    # Statements

    def parse_statement(self, indent: Indent) -> _Parsed:
        """Parse one statement, and those that follow at the same indentation.

        Returns the statement and the indentation of the line after it.
        """
        if self._try_parse_keyword("return"):
            return self._parse_return()
        if self._try_parse_keyword("if"):
            return self._parse_if(indent)
        if self._try_parse_keyword("match"):
            return self._parse_match(indent)
        if self._try_parse_keyword("switch"):
            return self._parse_switch(indent)
        if self._try_parse_keyword("fold"):
            return self._parse_fold(indent)
        if self._try_parse_keyword("bend"):
            return self._parse_bend(indent)
        if self._try_parse_keyword("do"):
            return self._parse_do(indent)
        if self._try_parse_keyword("open"):
            return self._parse_open(indent)
        if self._try_parse_keyword("use"):
            return self._parse_use(indent)
        return self._parse_assign(indent)

    def _continue(self, indent: Indent, nxt_indent: Indent) -> Tuple[Optional[Stmt], Indent]:
        """Parse the following statement if it sits at the current indentation."""
        if nxt_indent == indent:
            return self.parse_statement(indent)
        return None, nxt_indent

    def _parse_assign(self, indent: Indent) -> _Parsed:
        ini_idx = self.index
        pat = self.parse_assign_pattern()
        end_idx = self.index
        self.skip_trivia_inline()

        if self._starts_with("="):
            self._advance()
            val = self.parse_expr(True)
            self.skip_trivia_inline()
            self._try_consume_exactly(";")
            if not self._is_eof():
                self._consume_new_line()
            nxt, nxt_indent = self._continue(indent, self._advance_newlines())
            return Assign(pat, val, nxt), nxt_indent

        if self._starts_with("<-"):
            self.consume("<-")
            val = self.parse_expr(True)
            self.skip_trivia_inline()
            self._try_consume_exactly(";")
            self._consume_indent_exactly(indent)
            nxt, nxt_indent = self.parse_statement(indent)
            return Ask(pat, val, nxt), nxt_indent

        if isinstance(pat, VarPat):
            op = self._parse_in_place_op()
            if op is not None:
                val = self.parse_expr(True)
                self.skip_trivia_inline()
                self._try_consume_exactly(";")
                self._consume_indent_exactly(indent)
                nxt, nxt_indent = self.parse_statement(indent)
                return InPlace(op, pat.nam, val, nxt), nxt_indent

        self._expected_spanned("statement", ini_idx, end_idx)

    def _parse_in_place_op(self) -> Optional[InPlaceOp]:
        self.skip_trivia_inline()
        for text, op in _IN_PLACE_OPS:
            if self._starts_with(text):
                self.consume(text)
                return op
        return None

    def _parse_return(self) -> _Parsed:
        term = self.parse_expr(True)
        self.skip_trivia_inline()
        self._try_consume_exactly(";")
        if not self._is_eof():
            self._consume_new_line()
        return Return(term), self._advance_newlines()

    def _parse_if(self, indent: Indent) -> _Parsed:
        cond = self.parse_expr(True)
        self.skip_trivia_inline()
        self._consume_exactly(":")
        indent.enter_level()

        self._consume_indent_exactly(indent)
        then, nxt_indent = self.parse_statement(indent)
        indent.exit_level()

        if nxt_indent != indent:
            self._expected_indent(indent, nxt_indent)
        self._parse_keyword("else")
        self.skip_trivia_inline()
        self._consume_exactly(":")
        indent.enter_level()

        self._consume_indent_exactly(indent)
        otherwise, nxt_indent = self.parse_statement(indent)
        indent.exit_level()

        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return If(cond, then, otherwise, nxt), nxt_indent

    def _parse_match_arms(self, indent: Indent) -> Tuple[List[MatchArm], Indent]:
        self._consume_indent_exactly(indent)
        case, nxt_indent = self._parse_match_case(indent)
        arms = [case]
        while nxt_indent == indent:
            case, nxt_indent = self._parse_match_case(indent)
            arms.append(case)
        return arms, nxt_indent

    def _parse_match(self, indent: Indent) -> _Parsed:
        bind, arg = self._parse_match_arg()
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()
        arms, nxt_indent = self._parse_match_arms(indent)
        indent.exit_level()
        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return Match(arg, bind, arms, nxt), nxt_indent

    def _parse_match_arg(self) -> Tuple[Optional[str], Expr]:
        ini_idx = self.index
        arg = self.parse_expr(True)
        end_idx = self.index
        self.skip_trivia_inline()
        if self._starts_with("="):
            if not isinstance(arg, Var):
                self._expected_spanned("argument name", ini_idx, end_idx)
            self._advance()
            return arg.nam, self.parse_expr(True)
        if isinstance(arg, Var):
            return arg.nam, Var(arg.nam)
        return "%arg", arg

    def _parse_match_case(self, indent: Indent) -> Tuple[MatchArm, Indent]:
        self._parse_keyword("case")
        self.skip_trivia_inline()
        if self._try_consume_exactly("_"):
            pat = None
        else:
            pat = self._labelled(self.parse_name, "name or '_'")
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        body, nxt_indent = self.parse_statement(indent)
        indent.exit_level()
        return MatchArm(pat, body), nxt_indent

    def _parse_switch(self, indent: Indent) -> _Parsed:
        bind, arg = self._parse_match_arg()
        self.skip_trivia_inline()
        self._consume_exactly(":")
        indent.enter_level()

        self._consume_indent_exactly(indent)
        ini_idx = self.index
        fst_case, fst_stmt, nxt_indent = self._parse_switch_case(indent)
        end_idx = self.index
        if fst_case != 0:
            self._expected_spanned("case 0", ini_idx, end_idx)
        arms = [fst_stmt]
        expected_num = 1
        while True:
            if nxt_indent != indent:
                self._expected_indent(indent, nxt_indent)
            case, stmt, nxt_indent = self._parse_switch_case(indent)
            arms.append(stmt)
            if case is None:
                break
            if case != expected_num:
                self._expected(f"case {expected_num}")
            expected_num += 1
        indent.exit_level()
        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return Switch(arg, bind, arms, nxt), nxt_indent

    def _parse_switch_case(self, indent: Indent) -> Tuple[Optional[int], Stmt, Indent]:
        self._parse_keyword("case")
        self.skip_trivia_inline()
        c = self._peek()
        if c == "_":
            self._advance()
            case = None
        elif c is not None and c.isascii() and c.isdigit():
            case = self._parse_u32()
        else:
            self._expected("number or '_'")

        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()
        self._consume_indent_exactly(indent)
        stmt, nxt_indent = self.parse_statement(indent)
        indent.exit_level()
        return case, stmt, nxt_indent

    def _parse_fold(self, indent: Indent) -> _Parsed:
        bind, arg = self._parse_match_arg()
        self.skip_trivia_inline()
        with_: List[str] = []
        if self._try_parse_keyword("with"):
            self.skip_trivia_inline()
            while not self._starts_with(":"):
                with_.append(self.parse_name())
                self.skip_trivia_inline()
                if not self._starts_with(":"):
                    self._consume_exactly(",")
                self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()
        arms, nxt_indent = self._parse_match_arms(indent)
        indent.exit_level()
        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return Fold(arg, bind, with_, arms, nxt), nxt_indent

    def _parse_bend(self, indent: Indent) -> _Parsed:
        args = self._list_like(self._parse_match_arg, "", ":", ",", True, 1)
        bind = [b for b, _ in args]
        init = [i for _, i in args]
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        self._parse_keyword("when")
        cond = self.parse_expr(True)
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        step, nxt_indent = self.parse_statement(indent)
        indent.exit_level()

        if nxt_indent != indent:
            self._expected_indent(indent, nxt_indent)
        self._parse_keyword("else")
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        base, nxt_indent = self.parse_statement(indent)
        indent.exit_level()
        indent.exit_level()

        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return Bend(bind, init, cond, step, base, nxt), nxt_indent

    def _parse_do(self, indent: Indent) -> _Parsed:
        self.skip_trivia_inline()
        typ = self.parse_name()
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        bod, nxt_indent = self.parse_statement(indent)
        indent.exit_level()

        nxt, nxt_indent = self._continue(indent, nxt_indent)
        return Do(typ, bod, nxt), nxt_indent

    def parse_assign_pattern(self) -> AssignPattern:
        """Parse the left side of an assignment."""
        if self._starts_with("*"):
            self._advance()
            return EraserPat()
        if self._starts_with("("):
            binds = self._list_like(self.parse_assign_pattern, "(", ")", ",", True, 1)
            if len(binds) == 1:
                return binds[0]
            return TupPat(binds)
        if self._starts_with("{"):
            binds = self._list_like(self.parse_assign_pattern, "{", "}", ",", True, 2)
            return SupPat(binds)
        if self._starts_with("$"):
            self._advance()
            self.skip_trivia_inline()
            return ChnPat(self.parse_name())

        var = self.parse_name()
        if self._starts_with("["):
            self._advance()
            key = self.parse_expr(False)
            self.consume("]")
            return MapSetPat(var, key)
        return VarPat(var)

    def _parse_open(self, indent: Indent) -> _Parsed:
        self.skip_trivia_inline()
        typ = self._labelled(self.parse_name, "type name")
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self.skip_trivia_inline()
        var = self._labelled(self.parse_name, "variable name")
        self.skip_trivia_inline()
        self._try_consume_exactly(";")
        self._consume_new_line()
        self._consume_indent_exactly(indent)
        nxt, nxt_indent = self.parse_statement(indent)
        return Open(typ, var, nxt), nxt_indent

    def _parse_use(self, indent: Indent) -> _Parsed:
        self.skip_trivia_inline()
        nam = self.parse_name()
        self.skip_trivia_inline()
        self._consume_exactly("=")
        self.skip_trivia_inline()
        val = self.parse_expr(True)
        self.skip_trivia_inline()
        self._try_consume_exactly(";")
        self._consume_new_line()
        self._consume_indent_exactly(indent)
        nxt, nxt_indent = self.parse_statement(indent)
        return Use(nam, val, nxt), nxt_indent

    # Top-level items

    def _check_top_level(self, indent: Indent, what: str, keyword: str) -> None:
        if indent != Indent(0):
            msg = (
                f"Indentation error. {what} defined with '{keyword}' "
                "must be at the start of the line."
            )
            self._with_ctx(msg, self.index, self.index + 1)

    def parse_def(self, indent: Indent) -> Tuple[Definition, Indent]:
        """Parse a function definition after its 'def' keyword."""
        self._check_top_level(indent, "Functions", "def")
        indent = Indent(indent.value)

        self.skip_trivia_inline()
        name = self._parse_top_level_name()
        self.skip_trivia_inline()
        params: List[str] = []
        if self._starts_with("("):
            params = self._list_like(self.parse_name, "(", ")", ",", True, 0)
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        body, nxt_indent = self.parse_statement(indent)
        indent.exit_level()
        return Definition(name, params, body), nxt_indent

    def parse_type(self, indent: Indent) -> Tuple[TypeDef, Indent]:
        """Parse a data type with its variants after the 'type' keyword."""
        self._check_top_level(indent, "Types", "type")
        indent = Indent(indent.value)

        self.skip_trivia_inline()
        typ_name = self._parse_top_level_name()
        self.skip_trivia_inline()
        self._consume_exactly(":")
        self._consume_new_line()
        indent.enter_level()

        self._consume_indent_exactly(indent)
        variants: List[Variant] = []
        nxt_indent = Indent(indent.value)
        while nxt_indent == indent:
            variants.append(self.parse_enum_variant(typ_name))
            if not self._is_eof():
                self._consume_new_line()
            nxt_indent = self._consume_indent_at_most(indent)
        indent.exit_level()
        return TypeDef(typ_name, variants), nxt_indent

    def parse_enum_variant(self, typ_name: str) -> Variant:
        """Parse one variant of a type; its name is qualified by the type name."""
        ctr_name = self._parse_top_level_name()
        fields: List[CtrField] = []
        self.skip_trivia_inline()
        if self._starts_with("{"):
            fields = self._list_like(self._parse_variant_field, "{", "}", ",", True, 0)
        return Variant(f"{typ_name}/{ctr_name}", fields)

    def parse_object(self, indent: Indent) -> Tuple[Variant, Indent]:
        """Parse a single-constructor type after the 'object' keyword."""
        self._check_top_level(indent, "Types", "object")

        self.skip_trivia_inline()
        name = self._parse_top_level_name()
        self.skip_trivia_inline()
        fields: List[CtrField] = []
        if self._starts_with("{"):
            fields = self._list_like(self._parse_variant_field, "{", "}", ",", True, 0)
        if not self._is_eof():
            self._consume_new_line()
        return Variant(name, fields), self._advance_newlines()

    def _parse_variant_field(self) -> CtrField:
        rec = self._try_consume_exactly("~")
        self.skip_trivia()
        return CtrField(self.parse_name(), rec)

    # Adding items to a book

    def _check_free_name(self, name: str, book: Book, ini_idx: int, end_idx: int) -> None:
        if name in book.defs:
            self._with_ctx(f"Redefinition of function '{name}'.", ini_idx, end_idx)
        if name in book.ctrs:
            self._with_ctx(f"Redefinition of constructor '{name}'.", ini_idx, end_idx)

    def add_def(self, definition: Definition, book: Book, ini_idx: int, end_idx: int,
                builtin: bool) -> None:
        """Lower a definition and add it to the book.

        Raises ParseError on redefinition; errors from argument ordering
        and lowering propagate unchanged.
        """
        self._check_free_name(definition.name, book, ini_idx, end_idx)
        order_kwargs(definition, book)
        gen_map_get(definition)
        book.defs[definition.name] = definition_to_fun(definition, builtin)

    def add_type(self, typedef: TypeDef, book: Book, ini_idx: int, end_idx: int,
                 builtin: bool) -> None:
        """Register a data type and its constructors in the book."""
        if typedef.name in book.adts:
            self._with_ctx(f"Redefinition of type '{typedef.name}'.", ini_idx, end_idx)
        adt = Adt({}, builtin)
        for variant in typedef.variants:
            self._check_free_name(variant.name, book, ini_idx, end_idx)
            book.ctrs[variant.name] = typedef.name
            adt.ctrs[variant.name] = variant.fields
        book.adts[typedef.name] = adt

    def add_object(self, obj: Variant, book: Book, ini_idx: int, end_idx: int,
                   builtin: bool) -> None:
        """Register an object as a type with a single constructor of the same name."""
        if obj.name in book.adts:
            self._with_ctx(f"Redefinition of type '{obj.name}'.", ini_idx, end_idx)
        self._check_free_name(obj.name, book, ini_idx, end_idx)
        adt = Adt({}, builtin)
        book.ctrs[obj.name] = obj.name
        adt.ctrs[obj.name] = obj.fields
        book.adts[obj.name] = adt