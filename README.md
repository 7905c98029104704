# bendc

`bendc` is a library for a small functional language. The language has an
indentation-based syntax that looks like Python. The library provides these
pieces:

- a parser for that syntax;
- passes that expand map lookups and order named arguments;
- lowering of the parsed functions to lambda terms, collected in a `Book`;
- conversion of an HVM core net into a three-port interaction net;
- compilation option objects and their command-line spellings;
- a helper that runs an external `hvm` executable and captures its result.

It uses only the Python standard library and needs Python 3.10 or later.

## Modules

| Module                | Contents |
|-----------------------|----------|
| `bendc.syntax`        | The syntax tree. Expressions: `Eraser`, `Var`, `Chn`, `Number`, `Call`, `Lam`, `Bin`, `Str`, `Lst`, `Tup`, `Sup`, `Constructor`, `Comprehension`, `MapInit`, `MapGet`. Assignment patterns: `EraserPat`, `VarPat`, `ChnPat`, `TupPat`, `SupPat`, `MapSetPat`. Statements: `Assign`, `InPlace`, `If`, `Match`, `Switch`, `Bend`, `Fold`, `Do`, `Ask`, `Return`, `Open`, `Use`. Top-level items: `Definition`, `TypeDef`, `Variant`. Also `Op`, whose operators have `precedence()`, as well as `InPlaceOp`, `Num` and `CtrField`. |
| `bendc.expr_parser`   | `ExprParser` parses expressions (`parse_expr`), names (`parse_name`) and trivia: whitespace and `#` comments. The module also defines `Indent` and `ParseError`. |
| `bendc.parser`        | `PyParser`, a subclass of `ExprParser`. It parses statements, `def` functions, `type` enums and `object` records. It adds them to a `Book` with `add_def`, `add_type` and `add_object`. |
| `bendc.gen_map_get`   | `gen_map_get` rewrites each `map[key]` read in a definition. The read becomes a fresh variable bound by `(var, map) = Map/get(map, key)`. |
| `bendc.order_kwargs`  | `order_kwargs` turns named call and constructor arguments into positional ones, in the callee's declared order. `arg_names` looks that order up. Errors are raised as `KwargsError`. |
| `bendc.lowering`      | `definition_to_fun`, `expr_to_fun` and `pattern_to_fun` lower the syntax tree to terms such as `TLam`, `TApp`, `TLet`, `TSwt`, `TMat`, `TFold` and `TBend`. The module also defines `Book`, `FunDefinition`, `Rule` and `Adt`. Malformed control flow is raised as `LoweringError`. |
| `bendc.inet`          | `INet` is a graph of three-port nodes in which node 0 is a root. The module also has `Port`, `Node`, `NodeKind`, `NodeTag`, `CtrKind` and `INode`. |
| `bendc.hvmc_to_net`   | `hvmc_to_net` converts an `HvmNet` into an `INet`. The `HvmNet` is built from `TreeEra`, `TreeCtr`, `TreeVar`, `TreeRef`, `TreeNum`, `TreeOp` and `TreeMat`. The module also exposes the two steps of the conversion, `hvmc_to_inodes` and `inodes_to_inet`. |
| `bendc.options`       | `CompileOpts`, `RunOpts`, `OptLevel` and `AdtEncoding`. `compile_opts_from_cli` builds options from `OptArg` values. `WarningArg` lists the names of the warning flags. |
| `bendc.runner`        | `run_hvm`, `filter_hvm_output` and `split_hvm_output`. Failures are raised as `HvmError`. |

## Parsing and lowering a function

The caller consumes the leading keyword, and `parse_def` parses the rest of
the definition.

```python
from bendc.expr_parser import Indent
from bendc.lowering import Book
from bendc.parser import PyParser

source = """def main:
  x = {1: 2, 3: 4}
  x[1] = 10
  return [v * 2 for v in [1, 2, 3] if v]
"""

parser = PyParser(source)
parser.consume("def")
definition, _ = parser.parse_def(Indent(0))

book = Book()
parser.add_def(definition, book, 0, len(source), builtin=False)
fun_def = book.defs["main"]   # a FunDefinition with one Rule
```

`add_def` runs three steps in order: `order_kwargs`, then `gen_map_get`, then
`definition_to_fun`. It then stores the result in `book.defs`. Syntax errors
and redefinitions are raised as `ParseError`. `str(error)` includes the line,
the column and a marked copy of the offending line. Named-argument problems
are raised as `KwargsError` and lowering problems as `LoweringError`.

Types work the same way:

```python
parser = PyParser("type Tree:\n  Node { ~left, ~right }\n  Leaf { value }\n")
parser.consume("type")
typedef, _ = parser.parse_type(Indent(0))
parser.add_type(typedef, book, 0, 0, builtin=False)
# book.ctrs == {"Tree/Node": "Tree", "Tree/Leaf": "Tree"}
```

The lowering rules are as follows. A function body must end in `return`. In
`if`, `match`, `switch`, `fold` and `bend`, every branch must either return
or end by assigning the same pattern. A statement that returns must be the
last statement.

## Compilation options

`CompileOpts` is a frozen dataclass with these defaults:

- eta reduction on;
- match linearization `OptLevel.ENABLED`;
- combinator floating on;
- pruning, merging, inlining and the net-size check off;
- `AdtEncoding.NUM_SCOTT`.

`set_all()` returns a copy with every optimizing pass turned on. `set_no_all()`
returns a copy with every optimizing pass turned off. Both keep
`check_net_size` and `adt_encoding` as they were. `check_for_strict()` prints
a warning for each of two cases: combinator floating is off, or match
linearization is disabled.

`compile_opts_from_cli` takes `OptArg` members or their command-line names.
It applies them in order to the defaults:

```python
from bendc.options import compile_opts_from_cli

opts = compile_opts_from_cli(["no-all", "eta", "adt-scott"])
```

An unknown name raises `ValueError`.

## Running with HVM

`run_hvm(book_text, cmd)` runs the external runtime on a book given as text:

1. It writes the text to `.out.hvm` in the working directory.
2. It runs `hvm <cmd> .out.hvm`, where `cmd` is for example `run`, `run-c` or `run-cu`.
3. It copies the runtime's output to stdout up to the `Result: ` marker.
4. It removes the file.
5. It returns everything after the marker.

`split_hvm_output` splits that text into two parts: the result line and the
statistics that follow it. The `hvm` executable must be on `PATH`.

## What it does not do

- There is no command-line program. `OptArg` and `WarningArg` only model flag
  values, and nothing in the package reads warning settings.
- There is no full compiler pipeline. It does not turn a `Book` into a net,
  desugar terms further, check or report diagnostics, or pretty-print a book
  as text for `hvm`. `run_hvm` expects that text to be produced elsewhere.
- It does not parse HVM's textual net syntax. An `HvmNet` has to be built
  from the tree classes.
- It does not read an `INet` back into terms.
- It does not load source files or split a file into top-level items. The
  caller drives `PyParser` item by item.